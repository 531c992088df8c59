"""
Centralized filesystem locations for the upgrade tooling.
"""

import os

# Base directory for logs and the default SQLite database
DATA_DIR = os.getenv('CLOUD_DATA_DIR', '/var/lib/cloud-db-upgrade')

DATABASE_URL = f"sqlite:///{os.path.join(DATA_DIR, 'cloud.db')}"

# Directory shipped with the package that holds db/schema-*.sql
BUNDLED_SCRIPTS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'upgrade')
