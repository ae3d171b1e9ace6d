"""
Forms for wryte views.
"""
from django import forms

from .conf import wryte_settings
from .models import Post


class PostForm(forms.ModelForm):
    """
    Post editor form.

    image_urls holds one hosted image URL per line. When left blank the
    images are read from the <img> tags in the content.
    """

    image_urls = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={"rows": 3}),
        help_text="One image URL per line",
    )

    class Meta:
        model = Post
        fields = ["title", "content"]
        widgets = {
            "content": forms.Textarea(attrs={"rows": 16}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance.pk and not self.is_bound:
            self.initial["image_urls"] = "\n".join(
                self.instance.images.values_list("image_url", flat=True)
            )

    def clean_title(self):
        title = self.cleaned_data["title"].strip()
        if not title:
            raise forms.ValidationError("Title is required.")
        return title

    def clean_content(self):
        content = self.cleaned_data["content"]
        if not content.strip():
            raise forms.ValidationError("Content is required.")
        return content

    def clean_image_urls(self):
        raw = self.cleaned_data.get("image_urls", "")
        urls = [line.strip() for line in raw.splitlines() if line.strip()]
        validate = forms.URLField(max_length=512).clean
        return [validate(url) for url in urls] or None


class CommentForm(forms.Form):
    """Comment or reply body."""

    content = forms.CharField(
        max_length=wryte_settings.COMMENT_MAX_LENGTH,
        widget=forms.Textarea(attrs={"rows": 3}),
        strip=True,
    )
