from __future__ import annotations

from collections.abc import Iterator

import pytest

from pbfgraph.settings import settings


@pytest.fixture(autouse=True, scope="session")
def _isolated_log_dir(tmp_path_factory: pytest.TempPathFactory) -> Iterator[None]:
    # The JSON file handler is attached once, on first use of the logger.
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(settings, "out_dir", str(tmp_path_factory.mktemp("out")))
        yield
