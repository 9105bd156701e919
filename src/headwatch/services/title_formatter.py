"""Splices the current branch name into a window title."""

from enum import Enum
from typing import Callable, Optional


class TitlePlacement(str, Enum):
    FRONT = "front"
    BACK = "back"


class TitleSeparator(str, Enum):
    DASH = "dash"
    PIPE = "pipe"


SEPARATOR_CHARACTERS = {
    TitleSeparator.DASH: "-",
    TitleSeparator.PIPE: "|",
}


class TitleFormatter:
    """Formats "<branch> - <title>" (or the reverse) for a title display."""

    def __init__(
        self,
        placement: TitlePlacement = TitlePlacement.FRONT,
        separator: TitleSeparator = TitleSeparator.DASH,
        inner: Optional[Callable[[str], str]] = None,
    ):
        """Initialize title formatter.

        Args:
            placement: Whether the branch name goes before or after the title
            separator: Separator between branch name and title
            inner: Optional formatter applied to the title first
        """
        self.placement = TitlePlacement(placement)
        self.separator = separator
        self.inner = inner

    @classmethod
    def from_config(
        cls,
        title_config,
        placement: Optional[str] = None,
        separator: Optional[str] = None,
    ) -> "TitleFormatter":
        """Build a formatter from title settings, with optional overrides."""
        return cls(
            placement=TitlePlacement(placement or title_config.placement),
            separator=TitleSeparator(separator or title_config.separator),
        )

    @property
    def separator_character(self) -> str:
        try:
            return SEPARATOR_CHARACTERS[TitleSeparator(self.separator)]
        except ValueError:
            return "-"

    def format(self, title: str, branch_name: Optional[str]) -> str:
        if self.inner is not None:
            title = self.inner(title)

        if not branch_name:
            return title

        if self.placement == TitlePlacement.FRONT:
            front, back = branch_name, title
        else:
            front, back = title, branch_name

        return f"{front} {self.separator_character} {back}"
