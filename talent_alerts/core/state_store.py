"""Campaign state repositories.

Transition logic only sees ``load()``/``save()``; the JSON file backend keeps
one pretty-printed file per campaign and read-repairs a missing or corrupt
file to an EMPTY snapshot.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from talent_alerts.core.schemas import CampaignState
from talent_alerts.core.token_store import write_json_atomic

logger = logging.getLogger(__name__)


class StateRepository(ABC):
    """Storage for a single campaign's state snapshot."""

    @abstractmethod
    def load(self) -> CampaignState:
        """Return the persisted snapshot, or an EMPTY one when there is none."""

    @abstractmethod
    def save(self, state: CampaignState) -> None:
        """Persist the full snapshot. Raises PersistenceError on failure."""


class JsonFileStateRepository(StateRepository):
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> CampaignState:
        if not self._path.exists():
            return CampaignState.empty()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return CampaignState.model_validate(data)
        except (UnicodeDecodeError, json.JSONDecodeError, OSError, ValidationError) as e:
            logger.warning("Could not load state file %s, using EMPTY: %s", self._path, e)
            return CampaignState.empty()

    def save(self, state: CampaignState) -> None:
        write_json_atomic(self._path, state.to_json_dict())
        logger.debug("State saved to %s (%s)", self._path, state.state.value)


class InMemoryStateRepository(StateRepository):
    """Process-local repository, used in tests and dry runs."""

    def __init__(self, state: CampaignState | None = None) -> None:
        self._state = state or CampaignState.empty()
        self.save_count = 0

    def load(self) -> CampaignState:
        return self._state.model_copy(deep=True)

    def save(self, state: CampaignState) -> None:
        self._state = state.model_copy(deep=True)
        self.save_count += 1
