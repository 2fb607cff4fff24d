"""
Runs before any kinship module is imported: Settings reads the environment
once at import time, so point the app at throwaway locations here.
"""

import os
import tempfile

_scratch = tempfile.mkdtemp(prefix="kinship-tests-")

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOCAL_MEDIA_PATH", os.path.join(_scratch, "media"))
os.environ.setdefault("UPLOAD_TMP_PATH", os.path.join(_scratch, "uploads_tmp"))
os.environ.setdefault("BASE_URL", "http://testserver")
