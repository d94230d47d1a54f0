"""HTTP client for the DriverDocs API and the direct-to-storage upload step"""

from .api_client import DriverDocsClient
from .uploader import perform_upload

__all__ = ["DriverDocsClient", "perform_upload"]
