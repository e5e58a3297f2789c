"""
WebSocket game server for hot-seat Duskline.

One game session per connection. Both players share the connection and
take turns; every reply carries the acting player's fog-filtered view.
"""

import os
import json
import asyncio
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
import websockets

from duskline import (
    Attack, ConfirmDraft, DraftUnit, EndTurn, GameEngine, InvariantViolation, MoveUnit,
    PlaceTrench, PlaceUnit, Player, Position, Rest, SelectTrenchOption,
    SelectUnit, TimeOfDay, UnitClass,
)

load_dotenv(Path(__file__).parent / ".env")

logger = logging.getLogger(__name__)


class MessageError(ValueError):
    """A client message that cannot be turned into an intent or query."""


def _require(msg: dict, key: str):
    if key not in msg:
        raise MessageError(f"Missing field '{key}'")
    return msg[key]


def _position(msg: dict, key: str) -> Position:
    value = _require(msg, key)
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise MessageError(f"Field '{key}' must be [x, y]")
    x, y = value
    if not isinstance(x, int) or not isinstance(y, int):
        raise MessageError(f"Field '{key}' must hold integers")
    return Position(x, y)


def _enum(enum_cls, msg: dict, key: str):
    value = _require(msg, key)
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        raise MessageError(f"Invalid {key}: {value}") from None


def _int(msg: dict, key: str, default: Optional[int] = None) -> int:
    value = msg.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool):
        raise MessageError(f"Field '{key}' must be an integer")
    return value


INTENT_PARSERS = {
    "draft_unit": lambda m: DraftUnit(_enum(UnitClass, m, "unit_class"), _enum(TimeOfDay, m, "time")),
    "confirm_draft": lambda m: ConfirmDraft(),
    "place_unit": lambda m: PlaceUnit(str(_require(m, "unit_id")), _position(m, "pos")),
    "select_trench_option": lambda m: SelectTrenchOption(_int(m, "index")),
    "place_trench": lambda m: PlaceTrench(_position(m, "root"), _int(m, "rotation", 0)),
    "select_unit": lambda m: SelectUnit(str(_require(m, "unit_id"))),
    "move_unit": lambda m: MoveUnit(str(_require(m, "unit_id")), _position(m, "pos")),
    "attack": lambda m: Attack(str(_require(m, "attacker_id")), _position(m, "target")),
    "rest": lambda m: Rest(str(_require(m, "unit_id"))),
    "end_turn": lambda m: EndTurn(),
}


class GameSession:
    """Wraps a GameEngine for a single hot-seat game."""

    def __init__(self, seed: Optional[int] = None, data_path: Optional[Path] = None):
        self.engine = GameEngine(seed=seed, data_path=data_path)
        logger.info(f"Game initialized: seed={seed}")

    @property
    def viewer(self) -> Player:
        """Whoever acts next; P1 when nobody does."""
        return self.engine.state.acting_player or Player.P1

    def state_message(self, accepted: bool = True, viewer: Optional[Player] = None) -> dict:
        return {
            "type": "state",
            "accepted": accepted,
            "state": self.engine.view(viewer or self.viewer),
        }

    def handle_message(self, msg: dict) -> dict:
        """Process one client message and build the reply."""
        msg_type = msg.get("type", "")
        try:
            if msg_type in INTENT_PARSERS:
                intent = INTENT_PARSERS[msg_type](msg)
                accepted = self.engine.apply(intent)
                return self.state_message(accepted)
            return self._handle_query(msg_type, msg)
        except MessageError as e:
            return {"type": "error", "message": str(e)}
        except InvariantViolation as e:
            logger.error(f"Engine contract failure on {msg_type}: {e}")
            return {"type": "error", "message": f"Internal error: {e}"}

    def _handle_query(self, msg_type: str, msg: dict) -> dict:
        if msg_type == "get_state":
            viewer = _enum(Player, msg, "player") if "player" in msg else None
            return self.state_message(viewer=viewer)

        if msg_type in ("valid_moves", "valid_attacks", "hq_warnings"):
            unit_id = str(_require(msg, "unit_id"))
            lookup = {
                "valid_moves": self.engine.valid_move_tiles,
                "valid_attacks": self.engine.valid_attack_tiles,
                "hq_warnings": self.engine.hq_warning_tiles,
            }[msg_type]
            return {
                "type": "tiles",
                "kind": msg_type,
                "unit_id": unit_id,
                "tiles": [[t.x, t.y] for t in lookup(unit_id)],
            }

        if msg_type == "frontline":
            player = _enum(Player, msg, "player")
            time = _enum(TimeOfDay, msg, "time") if "time" in msg else self.engine.state.time_of_day
            return {
                "type": "frontline",
                "player": player.value,
                "time": time.value,
                "x": self.engine.frontline_x(player, time),
            }

        if msg_type == "available_classes":
            player = _enum(Player, msg, "player")
            time = _enum(TimeOfDay, msg, "time")
            return {
                "type": "available_classes",
                "player": player.value,
                "time": time.value,
                "classes": [c.value for c in self.engine.available_classes(player, time)],
            }

        if msg_type == "trench_preview":
            tiles = self.engine.trench_preview(_position(msg, "root"), _int(msg, "rotation", 0))
            return {"type": "tiles", "kind": msg_type, "tiles": [[t.x, t.y] for t in tiles]}

        raise MessageError(f"Unknown message type: {msg_type}")


# ── WebSocket Game Server ──


async def handle_websocket(websocket):
    """Handle a single WebSocket connection (one game session)."""
    session = None
    default_seed = os.environ.get("DUSKLINE_SEED")

    async def send_json(msg_type: str, data: dict):
        await websocket.send(json.dumps({"type": msg_type, **data}, default=str))

    try:
        async for raw in websocket:
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await send_json("error", {"message": "Invalid JSON"})
                continue
            if not isinstance(msg, dict):
                await send_json("error", {"message": "Messages must be JSON objects"})
                continue

            if msg.get("type") == "start_game":
                seed = msg.get("seed", default_seed)
                try:
                    seed = int(seed) if seed is not None else None
                except (TypeError, ValueError):
                    await send_json("error", {"message": f"Invalid seed: {seed}"})
                    continue

                logger.info(f"Starting game: seed={seed}")
                session = GameSession(seed=seed)
                reply = session.state_message()
            elif session is None:
                await send_json("error", {"message": "No game in progress"})
                continue
            else:
                reply = session.handle_message(msg)

            msg_type = reply.pop("type")
            await send_json(msg_type, reply)

    except websockets.exceptions.ConnectionClosed:
        logger.info("Client disconnected")


async def main():
    logging.basicConfig(level=logging.INFO)
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8080"))

    logger.info(f"Starting server on ws://{host}:{port}")

    async with websockets.serve(handle_websocket, host, port):
        await asyncio.Future()  # run forever


if __name__ == "__main__":
    asyncio.run(main())
