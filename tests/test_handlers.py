import asyncio
from typing import List

from clickgate.handlers import NO_STATE, ExecutionMode, Handler
from clickgate.lifetime import Lifetime


def test_sync_shapes_apply_captured_state() -> None:
    calls: List[object] = []
    plain = Handler.sync(lambda: calls.append("plain"))
    stateful = Handler.sync_with(("a", 1), calls.append)

    plain.call()
    stateful.call()

    assert calls == ["plain", ("a", 1)]
    assert plain.mode is stateful.mode is ExecutionMode.SYNC
    assert plain.state is NO_STATE and not plain.has_state
    assert stateful.has_state


def test_none_is_a_valid_captured_state() -> None:
    calls: List[object] = []
    Handler.sync_with(None, calls.append).call()
    assert calls == [None]


def test_async_shapes_receive_token() -> None:
    seen: List[object] = []
    token = Lifetime()

    async def _plain(tok: Lifetime) -> None:
        seen.append(tok)

    async def _stateful(state: int, tok: Lifetime) -> None:
        seen.append((state, tok))

    async def _main() -> None:
        await Handler.awaiting(_plain).call_async(token)
        await Handler.awaiting_with(5, _stateful).call_async(token)

    asyncio.run(_main())
    assert seen == [token, (5, token)]
    assert Handler.awaiting(_plain).mode is ExecutionMode.ASYNC
    assert Handler.awaiting(_plain).name.endswith("_plain")
