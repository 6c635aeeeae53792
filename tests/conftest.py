import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="kutter_sync_tests_"))
os.environ.setdefault("KUTTER_LOG_FILE", str(_TMP / "kutter_sync.log"))
os.environ.setdefault("KUTTER_STORAGE_FILE", str(_TMP / "kutter_sync.json"))
