"""
Persistence package: SQLAlchemy models and the DBStorage singleton.

The app factory calls `storage.configure(...)` with the configured
DATABASE_URL before serving requests.
"""
from models.db_storage import DBStorage

storage = DBStorage()
