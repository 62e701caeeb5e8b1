"""ApplicationType model for quote section types."""
from sqlalchemy import Column, String, Boolean, Integer, Text
from insulcrm.database import Base, IdType


class ApplicationType(Base):
    """Where insulation goes (ceiling, underfloor, walls...). Drives section colour."""

    __tablename__ = 'app_type'

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    code = Column(String(32), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    color_hex = Column(String(9), nullable=True)
    icon_name = Column(String(50), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0, server_default='0')
    is_active = Column(Boolean, nullable=False, default=True, server_default='true')

    def __repr__(self):
        return f"<ApplicationType(id={self.id}, code='{self.code}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'description': self.description,
            'color_hex': self.color_hex,
            'icon_name': self.icon_name,
            'sort_order': self.sort_order,
            'is_active': bool(self.is_active),
        }
