"""License Store.

Only the sandbox flag of a license matters to pricing: zero-amount sales on
sandbox instances are free.
"""

from pathlib import Path
from typing import Optional

from core.config import DEFAULT_DB_PATH
from models.marketplace import License
from storage.db import PathLike, get_db_connection


class LicenseStore:
    """Reads and writes license sandbox flags."""

    def __init__(self, db_path: PathLike = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)

    def save_license(self, entitlement_id: str, installed_on_sandbox: bool = False) -> License:
        conn = get_db_connection(self.db_path)
        try:
            conn.execute("""
                INSERT OR REPLACE INTO license (entitlement_id, installed_on_sandbox)
                VALUES (?, ?)
            """, (entitlement_id, int(installed_on_sandbox)))
            conn.commit()
            return License(entitlement_id=entitlement_id, installed_on_sandbox=installed_on_sandbox)
        finally:
            conn.close()

    def get_license(self, entitlement_id: str) -> Optional[License]:
        conn = get_db_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT * FROM license WHERE entitlement_id = ?",
                (entitlement_id,),
            ).fetchone()
            if row is None:
                return None
            return License(
                entitlement_id=row["entitlement_id"],
                installed_on_sandbox=bool(row["installed_on_sandbox"]),
            )
        finally:
            conn.close()

    def is_installed_on_sandbox(self, entitlement_id: str) -> bool:
        """True if the entitlement's license is flagged as a sandbox install.

        Unknown licenses are treated as production installs.
        """
        license = self.get_license(entitlement_id)
        return bool(license and license.installed_on_sandbox)
