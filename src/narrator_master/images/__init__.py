"""Image generation for scenes and infographics."""

from narrator_master.images.models import GeneratedImage
from narrator_master.images.service import ImageGenerator

__all__ = ["GeneratedImage", "ImageGenerator"]
