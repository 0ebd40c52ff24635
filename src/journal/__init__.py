"""
Trade notes (markdown + YAML frontmatter) and the append-only event journal.
"""

from journal.notes import NoteError, TradeNoteStore, open_position
from journal.writer import JournalWriter

__all__ = ["JournalWriter", "NoteError", "open_position", "TradeNoteStore"]
