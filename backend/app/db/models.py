from sqlalchemy import Column, String, JSON, TIMESTAMP, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class RoomRecord(Base):
    __tablename__ = "rooms"
    id          = Column(String, primary_key=True)     # key handed out by RoomStore.push
    room_code   = Column(String, index=True)           # 6-digit join code, not unique
    status      = Column(String, default="waiting")
    data        = Column(JSON, nullable=False, default=dict)
    created_at  = Column(TIMESTAMP, server_default=func.now())
