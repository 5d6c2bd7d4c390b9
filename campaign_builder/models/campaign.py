"""
Campaign structure models

Campaign → AdGroup → {Keyword, Ad}. Created and merged by the import engine.
"""
from sqlalchemy import Column, String, DateTime, JSON, Numeric, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from campaign_builder.models.base import Base
from campaign_builder.utils.helpers import generate_id


ENTITY_STATUSES = ("active", "paused", "draft")
MATCH_TYPES = ("broad", "phrase", "exact")


class Campaign(Base):
    """Advertising campaign"""
    __tablename__ = "campaigns"

    id = Column(String(32), primary_key=True, default=generate_id)
    name = Column(String, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    # Status: active, paused, draft

    budget = Column(Numeric(12, 2), nullable=False, default=0)  # Daily budget
    final_url = Column(Text, nullable=False, default="")
    path1 = Column(String(15), nullable=False, default="")
    path2 = Column(String(15), nullable=False, default="")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    ad_groups = relationship(
        "AdGroup", back_populates="campaign",
        cascade="all, delete-orphan", order_by="AdGroup.created_at",
    )

    def __repr__(self):
        return f"<Campaign {self.name} [{self.status}]>"


class AdGroup(Base):
    """Named bucket of keywords and ads inside one campaign"""
    __tablename__ = "ad_groups"

    id = Column(String(32), primary_key=True, default=generate_id)
    campaign_id = Column(String(32), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    status = Column(String(20), nullable=False, default="draft", index=True)
    max_cpc = Column(Numeric(10, 2), nullable=True)  # Default bid for the group

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    campaign = relationship("Campaign", back_populates="ad_groups")
    keywords = relationship(
        "Keyword", back_populates="ad_group",
        cascade="all, delete-orphan", order_by="Keyword.created_at",
    )
    ads = relationship(
        "Ad", back_populates="ad_group",
        cascade="all, delete-orphan", order_by="Ad.created_at",
    )

    def __repr__(self):
        return f"<AdGroup {self.name} (campaign {self.campaign_id})>"


class Keyword(Base):
    """Keyword inside an ad group. Text is unique per ad group."""
    __tablename__ = "keywords"

    id = Column(String(32), primary_key=True, default=generate_id)
    ad_group_id = Column(String(32), ForeignKey("ad_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(String, nullable=False)
    match_type = Column(String(10), nullable=False, default="broad")
    max_cpc = Column(Numeric(10, 2), nullable=True)  # Per-keyword bid override

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    ad_group = relationship("AdGroup", back_populates="keywords")

    def __repr__(self):
        return f"<Keyword {self.text} [{self.match_type}]>"


class Ad(Base):
    """Responsive search ad"""
    __tablename__ = "ads"

    id = Column(String(32), primary_key=True, default=generate_id)
    ad_group_id = Column(String(32), ForeignKey("ad_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    headlines = Column(JSON, nullable=False, default=list)  # [{id, text}]
    descriptions = Column(JSON, nullable=False, default=list)  # [{id, text}]
    final_url = Column(Text, nullable=False, default="")
    path1 = Column(String(15), nullable=False, default="")
    path2 = Column(String(15), nullable=False, default="")
    status = Column(String(20), nullable=False, default="draft", index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    ad_group = relationship("AdGroup", back_populates="ads")

    @property
    def headline_texts(self):
        return [h.get("text", "") for h in (self.headlines or [])]

    def __repr__(self):
        return f"<Ad {self.id} ({len(self.headlines or [])} headlines)>"
