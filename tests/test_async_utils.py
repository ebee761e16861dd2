import anyio
import pytest

from helpdesk.core.async_utils import run_async


async def _sample(value: str) -> str:
    await anyio.sleep(0)
    return value


def test_run_async_from_sync_code() -> None:
    assert run_async(_sample, "ok") == "ok"


def test_run_async_timeout() -> None:
    async def _slow() -> None:
        await anyio.sleep(5)

    with pytest.raises(TimeoutError):
        run_async(_slow, timeout=0.01)


@pytest.mark.asyncio
async def test_run_async_refuses_running_loop() -> None:
    with pytest.raises(RuntimeError, match="use await instead"):
        run_async(_sample, "nope")
