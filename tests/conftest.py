import asyncio
import inspect
import os
from pathlib import Path
import sys
from collections.abc import Iterator

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from playdeck.config import override_runtime_env  # noqa: E402


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    marker = pyfuncitem.get_closest_marker("asyncio")
    if marker is None:
        return None
    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None
    fixtureinfo = getattr(pyfuncitem, "_fixtureinfo", None)
    if fixtureinfo is None:
        return None
    kwargs = {name: pyfuncitem.funcargs[name] for name in fixtureinfo.argnames}
    asyncio.run(test_func(**kwargs))
    return True


@pytest.fixture(autouse=True)
def _test_environment(tmp_path: Path) -> Iterator[None]:
    state_dir = tmp_path / "state"
    state_dir.mkdir(parents=True, exist_ok=True)

    os.environ.setdefault("SPOTIFY_CLIENT_ID", "test-client")
    os.environ.setdefault("SPOTIFY_CLIENT_SECRET", "test-secret")
    os.environ["PLAYDECK_STATE_DIR"] = str(state_dir)

    override_runtime_env(None)
    try:
        yield
    finally:
        override_runtime_env(None)
        os.environ.pop("PLAYDECK_STATE_DIR", None)
