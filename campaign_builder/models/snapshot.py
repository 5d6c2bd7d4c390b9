"""
Campaign Snapshot: append-only copy of a campaign subtree taken before mutation.
"""
from sqlalchemy import Column, String, DateTime, JSON, Text
from datetime import datetime

from campaign_builder.models.base import Base
from campaign_builder.utils.helpers import generate_id


SNAPSHOT_TYPES = ("import", "manual", "pre_automation", "scheduled")


class CampaignSnapshot(Base):
    __tablename__ = "snapshots"

    id = Column(String(32), primary_key=True, default=generate_id)
    # No FK: snapshots outlive the campaign they describe
    campaign_id = Column(String(32), nullable=False, index=True)
    snapshot_type = Column(String(20), nullable=False)             # import | manual | pre_automation | scheduled
    snapshot_data = Column(JSON, nullable=False)                   # {campaign, ad_groups, ads, timestamp}
    description = Column(Text, nullable=False, default="")
    created_by = Column(String(50), nullable=False, default="system")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<CampaignSnapshot {self.campaign_id} [{self.snapshot_type}]>"
