"""Questionary / prompt_toolkit theme for flinkops confirmations.

Destructive actions (cancelling jobs, shutting sessions down) are confirmed
through a single central style so every prompt looks the same.
"""

from __future__ import annotations

from prompt_toolkit.styles import Style

QUESTIONARY_STYLE_CONFIRM = Style.from_dict(
    {
        "qmark": "bold ansibrightmagenta",
        "question": "bold ansibrightred",
        "answer": "bold ansibrightred",
        "instruction": "ansibrightblack",
        "error": "bold ansired",
        "disabled": "ansibrightblack",
    }
)
