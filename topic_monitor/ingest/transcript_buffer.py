from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TranscriptBuffer:
    items: list[str] = field(default_factory=list)
    interim: str = ""

    def append(self, text: str) -> None:
        text = (text or "").strip()
        if text:
            self.items.append(text)
        self.interim = ""

    def set_interim(self, text: str) -> None:
        self.interim = (text or "").strip()

    def text(self) -> str:
        return " ".join(self.items)
