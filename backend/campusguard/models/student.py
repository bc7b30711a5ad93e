"""
Modèle SQLAlchemy pour la table students.
Seuls les champs lus par le contrôle d'accès RFID sont mappés ici.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from campusguard.database import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
