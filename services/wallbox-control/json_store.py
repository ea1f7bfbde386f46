"""One JSON document on disk, typed by a pydantic model.

Loading merges the file over the model's compiled-in defaults, so fields
added in newer versions resolve to a safe value for documents written by
older ones.  All file-system and parse errors are absorbed here: they are
logged at warning level and never reach the caller.

Writes are atomic (write-tmp + rename) to avoid corruption on crash.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from shared.log import get_logger

from errors import PersistenceIOError

logger = get_logger("storage")

ModelT = TypeVar("ModelT", bound=BaseModel)


class JsonFileStore(Generic[ModelT]):
    """Load-with-default, backfill-on-load and persist-on-save for one file.

    Args:
        path: Location of the JSON document.
        model: Pydantic model describing the document.  Every field must
            have a default; ``model()`` is the backfill base.
        default_factory: Value written when the file does not exist yet.
            Defaults to ``model()``.
    """

    def __init__(
        self,
        path: Path,
        model: type[ModelT],
        default_factory: Callable[[], ModelT] | None = None,
    ) -> None:
        self.path = Path(path)
        self._model = model
        self._default_factory = default_factory or model

    def load(self) -> ModelT:
        try:
            raw = self._read()
            value = None if raw is None else self._validate(raw)
        except PersistenceIOError as exc:
            # Keep the broken file around for inspection; don't overwrite it
            logger.warning("document_load_failed", path=exc.path, details=exc.reason)
            return self._default_factory()

        if value is None:
            value = self._default_factory()
            logger.info("document_bootstrapped", path=str(self.path))
            self.save(value)
            return value

        logger.debug("document_loaded", path=str(self.path))
        return value

    def save(self, value: ModelT) -> None:
        try:
            self._write(_dump(value))
        except PersistenceIOError as exc:
            logger.warning("document_save_failed", path=exc.path, details=exc.reason)
            return
        logger.debug("document_saved", path=str(self.path))

    # ---- Internal ----------------------------------------------------

    def _backfill_base(self) -> dict[str, Any]:
        return _dump(self._model())

    def _read(self) -> dict[str, Any] | None:
        """Parsed document, or None if the file doesn't exist yet."""
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise PersistenceIOError(str(self.path), str(exc)) from exc
        if not isinstance(raw, dict):
            raise PersistenceIOError(
                str(self.path), f"expected a JSON object, got {type(raw).__name__}"
            )
        return raw

    def _validate(self, raw: dict[str, Any]) -> ModelT:
        merged = {**self._backfill_base(), **raw}
        try:
            return self._model.model_validate(merged)
        except ValidationError as exc:
            raise PersistenceIOError(
                str(self.path), f"{exc.error_count()} invalid field(s)"
            ) from exc

    def _write(self, data: dict[str, Any]) -> None:
        tmp = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(
                json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            tmp.replace(self.path)
        except OSError as exc:
            raise PersistenceIOError(str(self.path), str(exc)) from exc


def _dump(value: BaseModel) -> dict[str, Any]:
    return value.model_dump(mode="json", by_alias=True, exclude_none=True)
