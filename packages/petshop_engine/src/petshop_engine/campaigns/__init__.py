"""Campaign recipient filtering and webhook dispatch."""

from petshop_engine.campaigns.dispatcher import (
    CampaignService,
    CampaignWebhookClient,
    build_payload,
)
from petshop_engine.campaigns.filters import filter_clients, format_phone_with_ddi
from petshop_engine.campaigns.form import NO_MATCH_HINT, CampaignForm, FormState, evaluate

__all__ = [
    "NO_MATCH_HINT",
    "CampaignForm",
    "CampaignService",
    "CampaignWebhookClient",
    "FormState",
    "build_payload",
    "evaluate",
    "filter_clients",
    "format_phone_with_ddi",
]
