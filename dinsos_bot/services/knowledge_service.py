"""Program list, FAQ and assistant prompt loaded once from the knowledge directory."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dinsos_bot.logging_config import get_logger

logger = get_logger("knowledge_service")

PROGRAMS_FILE = "programs.json"
FAQ_FILE = "faq.json"
KNOWLEDGE_FILE = "knowledge.txt"


@dataclass(frozen=True)
class Program:
    name: str
    description: str = ""
    requirements: tuple[str, ...] = ()
    how_to_apply: str = ""

    def as_prompt_data(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "requirements": list(self.requirements),
            "howToApply": self.how_to_apply,
        }


@dataclass(frozen=True)
class FaqEntry:
    keywords: tuple[str, ...]
    answer: str

    @property
    def title(self) -> str:
        return self.keywords[0] if self.keywords else ""


@dataclass(frozen=True)
class KnowledgeBase:
    programs: tuple[Program, ...] = ()
    faq: tuple[FaqEntry, ...] = ()
    knowledge_text: str = ""

    def program_at(self, index: int) -> Optional[Program]:
        if 0 <= index < len(self.programs):
            return self.programs[index]
        return None

    def lookup_faq(self, text: str) -> Optional[str]:
        """First entry with a keyword contained in the text wins."""
        lowered = (text or "").casefold()
        if not lowered:
            return None
        for entry in self.faq:
            if any(keyword in lowered for keyword in entry.keywords):
                return entry.answer
        return None


def default_knowledge_text(dinas_name: str) -> str:
    return (
        f"Anda adalah asisten {dinas_name}. "
        "Bantu warga dengan informasi tentang program bantuan sosial."
    )


def _read_json(path: Path, expected: type) -> Any:
    if not path.exists():
        logger.warning(f"Knowledge file missing: {path}")
        return expected()
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading {path.name}: {e}")
        return expected()
    if not isinstance(data, expected):
        logger.error(f"Unexpected structure in {path.name}: {type(data).__name__}")
        return expected()
    return data


def parse_programs(raw: list) -> tuple[Program, ...]:
    programs = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("name"):
            logger.warning(f"Skipping program entry without name: {item!r}")
            continue
        programs.append(
            Program(
                name=str(item["name"]),
                description=str(item.get("description", "")),
                requirements=tuple(str(r) for r in item.get("requirements") or ()),
                how_to_apply=str(item.get("howToApply", "")),
            )
        )
    return tuple(programs)


def parse_faq(raw: dict) -> tuple[FaqEntry, ...]:
    entries = []
    for key, answer in raw.items():
        keywords = tuple(k.strip().casefold() for k in str(key).split(",") if k.strip())
        if keywords:
            entries.append(FaqEntry(keywords=keywords, answer=str(answer)))
    return tuple(entries)


def load_knowledge_base(directory: str | Path, dinas_name: str) -> KnowledgeBase:
    """Load the knowledge directory. Missing or broken files degrade to empty content."""
    base = Path(directory)

    programs = parse_programs(_read_json(base / PROGRAMS_FILE, list))
    faq = parse_faq(_read_json(base / FAQ_FILE, dict))

    knowledge_path = base / KNOWLEDGE_FILE
    try:
        knowledge_text = knowledge_path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        knowledge_text = ""
    except OSError as e:
        logger.error(f"Error loading {KNOWLEDGE_FILE}: {e}")
        knowledge_text = ""

    logger.info(
        "Knowledge loaded",
        extra={"context": {"dir": str(base), "programs": len(programs), "faq": len(faq)}},
    )
    return KnowledgeBase(
        programs=programs,
        faq=faq,
        knowledge_text=knowledge_text or default_knowledge_text(dinas_name),
    )
