from sqlalchemy import Column, DateTime, Integer, String, func
from db import Base


class LedgerUser(Base):
    __tablename__ = "ledger_users"

    # Surrogate key keeps insertion order for leaderboard ties
    id = Column(Integer, primary_key=True, autoincrement=True)
    # Telegram ids stored as strings, same as the JSON ledger keys
    user_id = Column(String, unique=True, index=True, nullable=False)

    balance = Column(Integer, nullable=False, default=0)
    last_earn = Column(Integer, nullable=False, default=0)
    referrals = Column(Integer, nullable=False, default=0)
    ref_code = Column(String(8), index=True, nullable=False)
    referred_by = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
