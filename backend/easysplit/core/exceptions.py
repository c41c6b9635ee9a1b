"""
Domain errors raised by services and translated to HTTP responses by main.py.
"""


class EasySplitError(Exception):
    """Base class for domain errors."""


class ExcessContributionError(EasySplitError, ValueError):
    """Extra contributions exceed what the non-contributing people owe."""

    def __init__(self, total_extra, recipients_total, currency: str = ""):
        self.total_extra = total_extra
        self.recipients_total = recipients_total
        super().__init__(
            f"Extra contributions ({currency}{total_extra:.2f}) exceed what others owe "
            f"({currency}{recipients_total:.2f}). Please reduce the extra amount."
        )


class InvalidContributionError(EasySplitError, ValueError):
    """An extra contribution is negative or not a finite number."""


class MenuReferenceError(EasySplitError, ValueError):
    """A split references a menu code that does not exist."""

    def __init__(self, menu_code: str):
        self.menu_code = menu_code
        super().__init__(f"Menu {menu_code} not found")


class CodeGenerationError(EasySplitError, RuntimeError):
    """No unused share code could be generated within the retry budget."""
