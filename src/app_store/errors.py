"""
Exceptions raised by the App Store client layer.
"""


class AppStoreError(Exception):
    """Base exception for App Store operations."""

    pass


class AuthenticationError(AppStoreError):
    """The account could not be signed in."""

    pass


class PurchaseError(AppStoreError):
    """The (free) purchase of an application failed."""

    pass


class RegionMismatchError(PurchaseError):
    """The account's storefront does not carry the application."""

    pass


class DownloadError(AppStoreError):
    """The application package could not be downloaded."""

    pass
