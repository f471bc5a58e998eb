"""Library configuration.

Defines loan defaults, dashboard sizes and display formats as a frozen
dataclass with sensible out-of-the-box values and env overrides.
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class LoanDefaults:
    """Defaults applied to new books when staff leave them blank."""

    return_days: int = 5
    borrow_limit: int = 3

    def __post_init__(self):
        if self.return_days < 1 or self.borrow_limit < 1:
            raise ValueError(
                f"Loan defaults must be at least 1, got return_days={self.return_days} "
                f"borrow_limit={self.borrow_limit}"
            )


@dataclass(frozen=True)
class DashboardConfig:
    """Sizes of the derived dashboard views."""

    most_borrowed_count: int = 3
    recent_activity_count: int = 5
    monthly_window: int = 6

    def __post_init__(self):
        for name in ("most_borrowed_count", "recent_activity_count", "monthly_window"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1, got {getattr(self, name)}")


@dataclass(frozen=True)
class LibraryConfig:
    """Complete configuration for the library.

    Usage::

        config = LibraryConfig.from_env()
        due = today + timedelta(days=config.loans.return_days)
    """

    loans: LoanDefaults = field(default_factory=LoanDefaults)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)

    date_format: str = "%b %d, %Y"
    timestamp_format: str = "%b %d, %Y %I:%M %p"

    @classmethod
    def default(cls) -> "LibraryConfig":
        """Create config with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "LIBRARY_") -> "LibraryConfig":
        """Create config from environment variables.

        Example: LIBRARY_DEFAULT_RETURN_DAYS=14
        """
        loans = LoanDefaults(
            return_days=int(os.getenv(f"{prefix}DEFAULT_RETURN_DAYS", LoanDefaults.return_days)),
            borrow_limit=int(os.getenv(f"{prefix}DEFAULT_BORROW_LIMIT", LoanDefaults.borrow_limit)),
        )
        dashboard = DashboardConfig(
            most_borrowed_count=int(
                os.getenv(f"{prefix}MOST_BORROWED_COUNT", DashboardConfig.most_borrowed_count)
            ),
            recent_activity_count=int(
                os.getenv(f"{prefix}RECENT_ACTIVITY_COUNT", DashboardConfig.recent_activity_count)
            ),
            monthly_window=int(os.getenv(f"{prefix}MONTHLY_WINDOW", DashboardConfig.monthly_window)),
        )
        return cls(loans=loans, dashboard=dashboard)


# Default configuration instance
config = LibraryConfig.default()
