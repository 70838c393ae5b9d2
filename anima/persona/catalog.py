"""File-backed persona catalogue: one JSON file per persona."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from anima.config.loader import convert_keys, convert_to_camel
from anima.persona.defaults import default_personas
from anima.persona.models import Persona
from anima.utils.helpers import ensure_dir, safe_filename


class PersonaCatalog:
    """Loads ``*.json`` persona definitions from a directory.

    Files use camelCase keys. Lookups are case-insensitive. A file that fails
    to parse is logged and skipped; the remaining personas stay available.
    """

    def __init__(self, directory: Path, *, seed_defaults: bool = True) -> None:
        self.directory = directory.expanduser()
        self.seed_defaults = seed_defaults
        self._lock = threading.Lock()
        self._personas: dict[str, Persona] = {}

    @classmethod
    def from_personas(cls, personas: list[Persona], directory: Path | None = None) -> PersonaCatalog:
        """In-memory catalogue (nothing is read from disk until ``reload()``)."""
        catalog = cls(directory or Path("."), seed_defaults=False)
        for persona in personas:
            catalog.register(persona)
        return catalog

    def load(self) -> int:
        """(Re)load every persona file. Returns the number of personas loaded."""
        ensure_dir(self.directory)
        if self.seed_defaults:
            self._seed()

        loaded: dict[str, Persona] = {}
        for path in sorted(self.directory.glob("*.json")):
            persona = self._load_file(path)
            if persona is not None:
                loaded[persona.key] = persona

        with self._lock:
            self._personas = loaded
        logger.info("Loaded {} persona(s) from {}", len(loaded), self.directory)
        return len(loaded)

    def reload(self) -> int:
        return self.load()

    def _load_file(self, path: Path) -> Persona | None:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            persona = Persona.model_validate(convert_keys(raw))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error("Failed to load persona file {}: {}", path, e)
            return None
        logger.debug("Loaded persona {} ({})", persona.name, persona.id)
        return persona

    def _seed(self) -> None:
        for payload in default_personas():
            path = self.directory / f"{payload['id']}.json"
            if path.exists():
                continue
            self.save(Persona.model_validate(payload))
            logger.info("Created persona template {}", path)

    def save(self, persona: Persona) -> Path:
        """Write one persona file atomically and register it."""
        ensure_dir(self.directory)
        path = self.directory / f"{safe_filename(persona.key)}.json"
        data = convert_to_camel(persona.model_dump(exclude_none=True))
        tmp_path = path.with_name(f".{path.name}.tmp-{os.getpid()}")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)
        self.register(persona)
        return path

    def register(self, persona: Persona) -> None:
        with self._lock:
            self._personas[persona.key] = persona

    def get(self, persona_id: str) -> Persona | None:
        if not persona_id:
            return None
        with self._lock:
            return self._personas.get(persona_id.strip().lower())

    def has(self, persona_id: str) -> bool:
        return self.get(persona_id) is not None

    def all(self) -> list[Persona]:
        with self._lock:
            return list(self._personas.values())

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._personas)

    def __len__(self) -> int:
        with self._lock:
            return len(self._personas)
