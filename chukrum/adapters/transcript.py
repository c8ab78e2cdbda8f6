"""
Transcript adapter: appends every render and event to a JSON-lines file.

Useful for replaying a session or feeding a stats collaborator offline. File
writes go through ``aiofiles`` so the event loop is never blocked.
"""

from typing import Any, Dict, Optional, Union
from enum import Enum
import json
import time

import aiofiles

from chukrum.adapters.base import PlatformAdapter, ValidActions
from chukrum.round.actions import ActionChoice


class TranscriptAdapter(PlatformAdapter):
    """
    Write-only adapter. Decisions are delegated to an inner adapter when one
    is given; otherwise the default timeout choice is used.
    """

    def __init__(self, log_file_path: str, inner: Optional[PlatformAdapter] = None):
        self.log_file_path = log_file_path
        self.inner = inner
        self.lines_written = 0

    async def _write(self, record: Dict[str, Any]) -> None:
        record.setdefault("ts", time.time())
        async with aiofiles.open(self.log_file_path, mode="a", encoding="utf-8") as log_file:
            await log_file.write(json.dumps(record, default=str, ensure_ascii=False) + "\n")
        self.lines_written += 1

    async def initialize(self) -> None:
        if self.inner:
            await self.inner.initialize()
        await self._write({"kind": "session_start"})

    async def shutdown(self) -> None:
        await self._write({"kind": "session_end"})
        if self.inner:
            await self.inner.shutdown()

    async def render_game_state(self, state: Dict[str, Any]) -> None:
        await self._write({"kind": "state", "state": state})
        if self.inner:
            await self.inner.render_game_state(state)

    async def request_player_action(
        self,
        player_id: str,
        player_name: str,
        valid_actions: ValidActions,
        timeout_seconds: Optional[float] = None,
    ) -> ActionChoice:
        if self.inner:
            choice = await self.inner.request_player_action(
                player_id, player_name, valid_actions, timeout_seconds
            )
        else:
            choice = await self.handle_timeout(player_id, player_name, valid_actions)
        await self._write(
            {
                "kind": "decision",
                "player_id": player_id,
                "action": choice.action.value,
                "positions": list(choice.positions),
            }
        )
        return choice

    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        name = event_type.name if isinstance(event_type, Enum) else event_type
        await self._write({"kind": "event", "event": name, "data": data})
        if self.inner:
            await self.inner.notify_game_event(event_type, data)
