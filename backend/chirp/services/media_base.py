"""
Chirp Backend — Abstract Media Host Interface
===============================================

What:  Abstract base class for the service that stores post, profile and
       cover images and hands back a public URL for each.
How:   Concrete hosts inherit from MediaHost and implement upload(),
       delete() and health_status().
Who:   Called by PostService (post images) and UserService (profile/cover).

Implementations:
    - CloudinaryMediaHost: Cloudinary REST API (production)
    - LocalMediaHost: date-organized files on local disk (development)
"""

from abc import ABC, abstractmethod


class MediaHost(ABC):
    """
    Abstract interface for image storage.

    Contract:
        - upload() accepts a source (data URI or http(s) URL) and returns
          the URL to persist on the document
        - delete() removes an image previously returned by upload()
        - Implementations handle their own retries and translate their
          failures into MediaHostError / CircuitBreakerOpenError
        - Callers never inspect which backend is in use
    """

    @abstractmethod
    async def upload(self, source: str) -> str:
        """
        Store an image and return its public URL.

        Args:
            source: "data:image/<type>;base64,<payload>" or an http(s) URL.

        Returns:
            str: URL to store in posts.img / users.profile_img / users.cover_img.

        Raises:
            ValidationError: The source is not an acceptable image.
            MediaHostError: The host failed after all retries.
            CircuitBreakerOpenError: Too many recent consecutive failures.
        """
        ...

    @abstractmethod
    async def delete(self, url: str) -> None:
        """
        Delete an image previously returned by upload().

        A URL the host does not recognise is ignored (logged), so callers
        can pass whatever is stored on the document.

        Raises:
            MediaHostError: The host failed after all retries.
            CircuitBreakerOpenError: Too many recent consecutive failures.
        """
        ...

    @abstractmethod
    def health_status(self) -> str:
        """
        Cheap, non-network status for GET /health.

        Returns: "available" or "circuit_open".
        """
        ...
