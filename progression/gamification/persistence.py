"""
Progression state persistence

KeyValueStore is the storage collaborator contract: string keys mapped to
string values, both operations async. StateRepository owns the encoding of
ProgressionState into one JSON value per slice, so a corrupt slice only
resets that slice.

Provided stores:
- InMemoryKeyValueStore: tests and ephemeral sessions
- JsonFileKeyValueStore: one JSON document on disk (written atomically)
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

from progression import config
from progression.exceptions import PersistenceError
from progression.gamification.xp_system import level_from_total_xp
from progression.models.achievement import UserAchievement
from progression.models.challenge import ChallengeProgress, WeeklyChallenge
from progression.models.level import UserLevel
from progression.models.quest import UserQuestProgress
from progression.models.safety import SafetyScore
from progression.models.state import MetricCounters, ProgressionState
from progression.models.streak import Streak, StreakType
from progression.observability import metrics

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Async string key-value storage"""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dictionary-backed store (not persisted across processes)"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def snapshot(self) -> Dict[str, str]:
        return dict(self._data)


class JsonFileKeyValueStore:
    """
    Store keeping all keys in a single JSON object file

    The file is read lazily on first access and rewritten on every set via a
    temporary file followed by os.replace.
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path else config.DATA_PATH / config.STATE_FILE_NAME
        self._data: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._data is None:
            if not self.path.exists():
                self._data = {}
            else:
                try:
                    raw = json.loads(self.path.read_text(encoding="utf-8"))
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Could not read state file {self.path}, starting empty: {e}")
                    raw = {}
                if not isinstance(raw, dict):
                    logger.warning(f"State file {self.path} is not a JSON object, starting empty")
                    raw = {}
                self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
        return self._data

    async def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    async def set(self, key: str, value: str) -> None:
        data = dict(self._load())
        data[key] = value
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(
                f"Failed to write state file {self.path}",
                key=key,
                operation="set",
                cause=e
            )
        self._data = data


_STREAKS_ADAPTER = TypeAdapter(Dict[StreakType, Streak])
_ACHIEVEMENTS_ADAPTER = TypeAdapter(list[UserAchievement])
_QUESTS_ADAPTER = TypeAdapter(list[UserQuestProgress])
_CHALLENGES_ADAPTER = TypeAdapter(list[WeeklyChallenge])


class _Slice:
    """How one ProgressionState attribute is stored"""

    def __init__(self, attribute: str, encode: Callable[[Any], str], decode: Callable[[str], Any]):
        self.attribute = attribute
        self.encode = encode
        self.decode = decode


def _model_slice(attribute: str, model: type[BaseModel]) -> _Slice:
    return _Slice(
        attribute,
        encode=lambda value: value.model_dump_json(),
        decode=model.model_validate_json,
    )


def _optional_model_slice(attribute: str, model: type[BaseModel]) -> _Slice:
    return _Slice(
        attribute,
        encode=lambda value: "null" if value is None else value.model_dump_json(),
        decode=lambda raw: None if json.loads(raw) is None else model.model_validate_json(raw),
    )


def _adapter_slice(attribute: str, adapter: TypeAdapter) -> _Slice:
    return _Slice(
        attribute,
        encode=lambda value: adapter.dump_json(value).decode("utf-8"),
        decode=adapter.validate_json,
    )


# Key suffix -> slice
SLICES: Dict[str, _Slice] = {
    "level": _Slice(
        "level",
        encode=lambda value: value.model_dump_json(),
        # Only total_xp is read back, the other fields are recomputed
        decode=lambda raw: level_from_total_xp(UserLevel.model_validate_json(raw).total_xp),
    ),
    "achievements": _adapter_slice("achievements", _ACHIEVEMENTS_ADAPTER),
    "streaks": _adapter_slice("streaks", _STREAKS_ADAPTER),
    "quests": _adapter_slice("quest_progress", _QUESTS_ADAPTER),
    "safety": _optional_model_slice("safety_score", SafetyScore),
    "challenge": _optional_model_slice("current_challenge", WeeklyChallenge),
    "challenge_progress": _optional_model_slice("challenge_progress", ChallengeProgress),
    "counters": _model_slice("counters", MetricCounters),
    "completed_challenges": _adapter_slice("completed_challenges", _CHALLENGES_ADAPTER),
}


class StateRepository:
    """
    Loads and saves ProgressionState through a KeyValueStore

    Each slice lives under "<key_prefix><slice>" (e.g. "gamification_level").
    """

    def __init__(self, store: KeyValueStore, key_prefix: Optional[str] = None):
        self.store = store
        self.key_prefix = config.STATE_KEY_PREFIX if key_prefix is None else key_prefix

    def key(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    async def load(self) -> ProgressionState:
        """
        Read every slice, falling back to defaults per slice

        Missing keys yield defaults silently; malformed values are logged at
        warning level and counted as decode fallbacks.

        Raises:
            PersistenceError: the store itself failed to read
        """
        defaults = ProgressionState()
        values: Dict[str, Any] = {}

        for name, slice_ in SLICES.items():
            key = self.key(name)
            try:
                raw = await self.store.get(key)
            except Exception as e:
                raise PersistenceError(
                    f"Failed to read '{key}' from state store",
                    key=key,
                    operation="load",
                    cause=e
                )

            if raw is None:
                values[slice_.attribute] = getattr(defaults, slice_.attribute)
                continue

            try:
                values[slice_.attribute] = slice_.decode(raw)
            except (ValidationError, ValueError) as e:
                logger.warning(f"Malformed persisted slice '{key}', using default: {e}")
                metrics.progression_decode_fallbacks_total.labels(slice=name).inc()
                values[slice_.attribute] = getattr(defaults, slice_.attribute)

        state = ProgressionState(**values)
        logger.info(
            f"Loaded progression state: level {state.level.current_level}, "
            f"{len(state.achievements)} achievements, {len(state.streaks)} streaks"
        )
        return state

    async def save(self, state: ProgressionState) -> None:
        """
        Write every slice of the snapshot

        Raises:
            PersistenceError: any write failed
        """
        for name, slice_ in SLICES.items():
            key = self.key(name)
            encoded = slice_.encode(getattr(state, slice_.attribute))
            try:
                await self.store.set(key, encoded)
            except PersistenceError:
                raise
            except Exception as e:
                raise PersistenceError(
                    f"Failed to write '{key}' to state store",
                    key=key,
                    operation="save",
                    cause=e
                )
        logger.debug("Progression state persisted")
