from sqlalchemy import Boolean, Column, Integer, String, true

from app.core.database import Base


class City(Base):
    __tablename__ = "city_table"

    id = Column("city_id", Integer, primary_key=True)
    name = Column("city_name", String(100), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
