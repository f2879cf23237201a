"""
Root conftest. Its presence makes pytest put the repository root on
``sys.path`` (rootdir-relative import), so test modules can import shared
constants as ``from tests.config import ...``.
"""
