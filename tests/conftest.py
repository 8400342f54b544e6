import httpx
import pytest

from supabase_storage import StorageClient

STORAGE_URL = "https://project-ref.supabase.co/storage/v1"
API_KEY = "service-role-test-key"


@pytest.fixture
def make_client():
    def factory(handler) -> StorageClient:
        return StorageClient(
            url=STORAGE_URL,
            api_key=API_KEY,
            transport=httpx.MockTransport(handler),
        )
    return factory
