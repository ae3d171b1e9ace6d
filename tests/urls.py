from django.urls import include, path

urlpatterns = [
    path("blogs/", include("wryte.urls")),
]
