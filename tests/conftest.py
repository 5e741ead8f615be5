import os

# Must be set before open_sen.config is imported anywhere
os.environ["APP_ENV"] = "test"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_KEY"] = ""

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def reset_store():
    """Each test starts without a process-wide store."""
    from open_sen.store import set_store
    set_store(None)
    yield
    set_store(None)
