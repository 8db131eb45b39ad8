"""LearningResource model: subscribable resources and their annual fee."""

from sqlalchemy import Column, Integer, Numeric, String

from edubilling.db.base import Base


class LearningResource(Base):
    __tablename__ = "learning_resources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    resource_name = Column(String(255), nullable=False)
    annual_fee = Column(Numeric(10, 2), nullable=False, default=0)
    resource_type = Column(String(20), nullable=False, default="paid")  # trial, paid
