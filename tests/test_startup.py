from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from shared.startup import init_database


def _unavailable():
    return OperationalError("CREATE TABLE", {}, Exception("connection refused"))


@pytest.mark.asyncio
async def test_init_database_retries_until_available():
    metadata = MagicMock()
    metadata.create_all.side_effect = [_unavailable(), None]

    await init_database(service_name="taskboard", metadata=metadata, engine=MagicMock(), wait_seconds=0)

    assert metadata.create_all.call_count == 2


@pytest.mark.asyncio
async def test_init_database_gives_up_after_retries():
    metadata = MagicMock()
    metadata.create_all.side_effect = _unavailable()

    with pytest.raises(OperationalError):
        await init_database(service_name="taskboard", metadata=metadata, engine=MagicMock(), retries=3, wait_seconds=0)

    assert metadata.create_all.call_count == 3
