import json
import logging
from pathlib import Path
from typing import Optional

from src.constants import DEFAULT_PROMPT, PROMPT_STORE_KEY, PROMPT_STORE_PATH

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path(PROMPT_STORE_PATH)


class PromptStore:
    """Tiny JSON key/value file. Load and save failures are logged, never raised."""

    def __init__(self, path: Path = DEFAULT_STORE_PATH):
        self._path = path
        self._store: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        match self._path.exists():
            case True:
                try:
                    with open(self._path) as f:
                        raw = json.load(f)
                    match raw:
                        case dict():
                            self._store = {str(k): str(v) for k, v in raw.items()}
                        case _:
                            logger.warning("Store %s is not an object, starting fresh", self._path.name)
                except Exception as e:
                    logger.warning("Store load failed: %s, starting fresh", e)
            case False:
                pass

    def _save(self) -> None:
        try:
            with open(self._path, "w") as f:
                json.dump(self._store, f, indent=2, ensure_ascii=False)
        except Exception as e:
            logger.warning("Store save failed: %s", e)

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def set(self, key: str, value: str) -> None:
        self._store[key] = value
        self._save()


class PromptSettings:
    """Active system prompt plus the draft held while the settings editor is open."""

    def __init__(self, store: PromptStore, default: str = DEFAULT_PROMPT) -> None:
        self._store = store
        self._default = default
        saved = store.get(PROMPT_STORE_KEY)
        match saved.strip() if saved else "":
            case "":
                self._active = default
            case _:
                self._active = saved
                logger.info("Saved prompt loaded")
        self._draft: Optional[str] = None

    @property
    def active(self) -> str:
        return self._active

    @property
    def default(self) -> str:
        return self._default

    @property
    def draft(self) -> Optional[str]:
        return self._draft

    @property
    def editing(self) -> bool:
        return self._draft is not None

    def open(self) -> str:
        self._draft = self._active
        return self._draft

    def set_draft(self, text: str) -> str:
        self._draft = text
        return text

    def reset_draft(self) -> str:
        """Load the built-in prompt into the editor; nothing is persisted until save()."""
        self._draft = self._default
        return self._draft

    def save(self) -> str:
        match (self._draft or "").strip():
            case "":
                raise ValueError("Prompt must not be empty")
            case _:
                pass
        self._active = self._draft
        self._store.set(PROMPT_STORE_KEY, self._active)
        self._draft = None
        return self._active

    def cancel(self) -> None:
        self._draft = None
