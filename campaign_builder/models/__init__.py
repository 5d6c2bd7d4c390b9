"""Database models for Campaign Builder"""

from campaign_builder.models.campaign import (
    Campaign,
    AdGroup,
    Keyword,
    Ad
)

from campaign_builder.models.snapshot import CampaignSnapshot
from campaign_builder.models.import_record import ImportRecord

from campaign_builder.models.performance import (
    PerformanceRecord,
    SearchTerm
)
