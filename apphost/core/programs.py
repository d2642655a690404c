# apphost/core/programs.py

"""
Program catalog.

- Stored as a JSON array in programs.json:

  [
    {"Title": "Notepad", "Command": "notepad.exe", "StartIn": null},
    {"Title": "Editor", "Command": "\"C:\\Tools\\ed.exe\" -n", "StartIn": "C:\\Work"}
  ]

- Missing or unreadable file -> built-in defaults
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


@dataclass
class ProgramEntry:
    title: str
    command: str
    start_in: Optional[str] = None

    def to_json(self) -> dict:
        return {"Title": self.title, "Command": self.command, "StartIn": self.start_in}

    @classmethod
    def from_json(cls, raw: dict) -> "ProgramEntry":
        if not isinstance(raw, dict):
            raise ValueError(f"program entry must be an object, got {type(raw).__name__}")
        start_in = raw.get("StartIn")
        return cls(
            title=str(raw.get("Title") or ""),
            command=str(raw.get("Command") or ""),
            start_in=str(start_in) if start_in else None,
        )


def default_programs() -> List[ProgramEntry]:
    return [
        ProgramEntry("Notepad", "notepad.exe"),
        ProgramEntry("Calculator", "calc.exe"),
        ProgramEntry("Paint", "mspaint.exe"),
    ]


class ProgramCatalog:
    def __init__(self, path: str | Path = "programs.json", logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self.logger = logger or logging.getLogger("apphost.ProgramCatalog")
        self.programs: List[ProgramEntry] = []

    # ---------- persistence ----------

    def load(self) -> List[ProgramEntry]:
        if not self.path.exists():
            self.logger.info(f"No program list at {self.path}, using defaults")
            self.programs = default_programs()
            return self.programs

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("top-level JSON value must be an array")
            self.programs = [ProgramEntry.from_json(item) for item in raw]
            self.logger.info(f"Loaded {len(self.programs)} program(s) from {self.path}")
        except Exception as e:
            self.logger.error(f"Failed to load program list from {self.path}: {e}")
            self.programs = default_programs()

        return self.programs

    def save(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            data = [p.to_json() for p in self.programs]
            self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
            self.logger.info(f"Saved {len(self.programs)} program(s) to {self.path}")
            return True
        except Exception as e:
            self.logger.error(f"Failed saving program list to {self.path}: {e}")
            return False

    # ---------- editing ----------

    def add(self, title: str, command: str, start_in: Optional[str] = None) -> ProgramEntry:
        entry = ProgramEntry(title=title.strip(), command=command.strip(), start_in=(start_in or "").strip() or None)
        self.programs.append(entry)
        return entry

    def remove(self, index: int) -> Optional[ProgramEntry]:
        if 0 <= index < len(self.programs):
            return self.programs.pop(index)
        return None

    def __len__(self) -> int:
        return len(self.programs)

    def __getitem__(self, index: int) -> ProgramEntry:
        return self.programs[index]
