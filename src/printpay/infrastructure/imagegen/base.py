"""Base image generator interface"""

from abc import ABC, abstractmethod

from printpay.domain.models.order import GeneratedDesign


class ImageGenerator(ABC):
    """Abstract base class for design image generators"""

    @abstractmethod
    async def generate_design(self, prompt: str) -> GeneratedDesign:
        """Generate a shirt design and a title for it

        Args:
            prompt: Text description of the design

        Returns:
            Image reference (URL or data URL) and title

        Raises:
            ExternalServiceError: If generation fails
        """

    async def aclose(self) -> None:
        """Release network resources"""
