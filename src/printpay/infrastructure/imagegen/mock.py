"""Mock image generator for testing and prototyping"""

import base64

from printpay.domain.models.order import GeneratedDesign
from printpay.infrastructure.imagegen.base import ImageGenerator

# 1x1 transparent PNG
_PIXEL_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class MockImageGenerator(ImageGenerator):
    """Returns a placeholder image and a title derived from the prompt"""

    def __init__(self, title_words: int = 4):
        self.title_words = title_words
        self.prompts = []

    async def generate_design(self, prompt: str) -> GeneratedDesign:
        self.prompts.append(prompt)
        words = prompt.split()[: self.title_words]
        title = " ".join(w.capitalize() for w in words) or "Custom Shirt Design"
        image_url = "data:image/png;base64," + base64.b64encode(_PIXEL_PNG).decode("ascii")
        return GeneratedDesign(image_url=image_url, title=title)
