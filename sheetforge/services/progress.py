from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display service with tqdm (TTY only).

The pipeline reports integer percentages (0-100) through a plain callback.
ProgressTracker is such a callback: it drives a single tqdm bar measured in
percent, disabled in non-TTY environments to avoid ANSI control sequence
spam, and ignores values that would move the bar backwards.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


class ProgressTracker:
    """Percent-based progress bar usable as an ``on_progress`` callback."""

    def __init__(self, *, description: str = "Processing") -> None:
        self.description = description
        self.percent = 0
        self.history: list[int] = []

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=100,
                desc=description,
                unit="%",
                disable=False,
                leave=True,
                position=0,
                ncols=80,  # Standard width for consistency
                ascii=True,  # ASCII chars for better compatibility
            )
        else:
            self.pbar = None

    def __call__(self, percent: int) -> None:
        self.update_to(percent)

    def update_to(self, percent: int) -> None:
        """Advance the bar to ``percent``; lower values are ignored."""
        percent = max(0, min(100, int(percent)))
        if percent <= self.percent and self.history:
            return
        delta = percent - self.percent
        self.percent = percent
        self.history.append(percent)
        if self.enabled and self.pbar is not None and delta > 0:
            self.pbar.update(delta)

    def describe(self, detail: str | None) -> None:
        """Show ``detail`` (e.g. the current worksheet) next to the description."""
        if self.enabled and self.pbar is not None:
            desc = f"{self.description} ({detail})" if detail else self.description
            self.pbar.set_description(desc)

    def close(self) -> None:
        """Close the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
