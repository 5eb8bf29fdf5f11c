import pytest


@pytest.fixture
def server_name(request):
    """Server under test, taken from the test file's directory name"""
    return request.path.parent.name
