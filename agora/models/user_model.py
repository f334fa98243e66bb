from sqlalchemy import Column, Integer, String, DateTime, func

from agora.database import Base, table_args

class User(Base):
    __tablename__ = "users"
    __table_args__ = table_args()

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    avatar = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
