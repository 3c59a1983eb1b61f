"""
Configuration settings for the campaign timeline engine.
Load configuration from environment variables or a .env file.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_file = Path(__file__).parent.parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Settings:
    """Application settings loaded from environment variables."""

    # Project paths
    PROJECT_ROOT = Path(__file__).parent.parent.parent
    DATA_DIR = Path(os.getenv('DATA_DIR', str(PROJECT_ROOT / 'data')))
    CATALOG_FILE = Path(os.getenv('CATALOG_FILE', str(DATA_DIR / 'catalog.csv')))
    BANK_HOLIDAYS_FILE = Path(os.getenv('BANK_HOLIDAYS_FILE', str(DATA_DIR / 'bank_holidays.csv')))

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', '')

    # ============================================================================
    # Scheduling
    # ============================================================================
    # 'typed' = FS/SS/FF dependency graph, 'legacy' = sequential chain with overlap
    SCHEDULE_STRATEGY = os.getenv('SCHEDULE_STRATEGY', 'typed')
    # Legacy overlap counts the drop day itself unless strict
    STRICT_OVERLAP_CALC = _env_flag('STRICT_OVERLAP_CALC')

    # ============================================================================
    # Limits
    # ============================================================================
    MAX_ASSETS = int(os.getenv('MAX_ASSETS', '50'))
    MAX_CUSTOM_TASKS_PER_ASSET = int(os.getenv('MAX_CUSTOM_TASKS_PER_ASSET', '5'))
    MAX_TASK_NAME_LENGTH = int(os.getenv('MAX_TASK_NAME_LENGTH', '100'))
    MIN_DURATION = int(os.getenv('MIN_DURATION', '1'))
    MAX_DURATION = int(os.getenv('MAX_DURATION', '365'))
    MAX_UNDO_HISTORY = int(os.getenv('MAX_UNDO_HISTORY', '50'))

    # Accepted date range for ISO inputs
    MIN_YEAR = int(os.getenv('MIN_YEAR', '1970'))
    MAX_YEAR = int(os.getenv('MAX_YEAR', '2100'))

    VALID_STRATEGIES = ('typed', 'legacy')

    @classmethod
    def validate_required_settings(cls) -> list[str]:
        """
        Validate that settings are usable.
        Returns list of problems found.
        """
        problems = []

        if cls.SCHEDULE_STRATEGY not in cls.VALID_STRATEGIES:
            problems.append(
                f"SCHEDULE_STRATEGY must be one of {cls.VALID_STRATEGIES}, "
                f"got {cls.SCHEDULE_STRATEGY!r}"
            )
        if cls.MIN_DURATION < 1 or cls.MIN_DURATION > cls.MAX_DURATION:
            problems.append(
                f"Duration bounds are inconsistent: {cls.MIN_DURATION}-{cls.MAX_DURATION}"
            )
        if cls.MIN_YEAR >= cls.MAX_YEAR:
            problems.append(f"Year bounds are inconsistent: {cls.MIN_YEAR}-{cls.MAX_YEAR}")
        for name in ('MAX_ASSETS', 'MAX_CUSTOM_TASKS_PER_ASSET', 'MAX_UNDO_HISTORY'):
            if getattr(cls, name) < 1:
                problems.append(f"{name} must be positive")

        return problems


# Create settings instance
settings = Settings()
