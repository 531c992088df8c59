"""
DbUpgrade abstraction for versioned database upgrade steps.

Each step migrates one release range. The orchestrator that picks steps,
owns the transaction and runs the SQL scripts lives outside this package;
a step only describes itself and performs its data migration on the
connection it is handed.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from sqlalchemy.engine import Connection


class DbUpgrade(ABC):
    """Interface every versioned upgrade step implements"""

    @abstractmethod
    def get_upgradable_version_range(self) -> List[str]:
        """
        Versions this step upgrades from.

        Returns:
            [from_version, to_version], e.g. ['4.4.2', '4.5.0']
        """
        pass

    @abstractmethod
    def get_upgraded_version(self) -> str:
        """Version the database is at after this step"""
        pass

    @abstractmethod
    def supports_rolling_upgrade(self) -> bool:
        """Whether old and new management servers may run side by side during the step"""
        pass

    @abstractmethod
    def get_prepare_scripts(self) -> List[Path]:
        """
        SQL scripts run before perform_data_migration().

        Raises:
            ScriptNotFoundError: If a script cannot be located
        """
        pass

    @abstractmethod
    def perform_data_migration(self, conn: Connection) -> None:
        """
        Migrate data on an open connection. The caller owns the transaction.

        Raises:
            UpgradeError: On any failure; remaining fixups are not attempted
        """
        pass

    @abstractmethod
    def get_cleanup_scripts(self) -> List[Path]:
        """
        SQL scripts run after perform_data_migration().

        Raises:
            ScriptNotFoundError: If a script cannot be located
        """
        pass
