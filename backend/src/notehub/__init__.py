"""NoteHub - college notes and question paper sharing backend"""

__version__ = "0.1.0"
