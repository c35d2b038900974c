import os
import tempfile
from pathlib import Path

# Must be set before theo_notes.core.config is imported anywhere.
_DB_PATH = Path(tempfile.gettempdir()) / "theo_notes_test.db"
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ.setdefault("GEMINI_API_KEY", "test-key")

import pytest  # noqa: E402

from theo_notes.db.base import Base  # noqa: E402
from theo_notes.db.session import engine  # noqa: E402


@pytest.fixture(autouse=True, scope="session")
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
