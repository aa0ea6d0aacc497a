# Fichier: drillcraft/db/base_class.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for every SQLAlchemy model.
    Used to create the schema at startup.
    """
