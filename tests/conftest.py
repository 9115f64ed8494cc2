import httpx
import pytest
import pytest_asyncio

from fake_s3 import FakeStore, create_app
from s3stream.client import ObjectClient

ENDPOINT = 'http://testserver/test-bucket'
REGION = 'eu-west-1'


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def app(store):
    return create_app(store)


def make_client(app, **kwargs):
    return ObjectClient(ENDPOINT, REGION, 'AKIDEXAMPLE', 'wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY',
                        transport=httpx.ASGITransport(app=app), **kwargs)


@pytest_asyncio.fixture
async def client(app):
    async with make_client(app) as client:
        yield client


@pytest_asyncio.fixture
async def small_part_client(app):
    """ A client with 1 KiB parts, for exercising part boundaries cheaply.
    """
    async with make_client(app, part_size=1024) as client:
        yield client
