# Content Enhancer — CTA, citation, image and schema insertion
"""
Content enhancer module: pure, idempotent HTML transformations applied
to generated posts on creation and on every edit.
"""

from .enhancer import (
    LEAD_MAGNET_MARKER,
    LEAD_MAGNET_OFFERS,
    ContentEnhancer,
    add_utm_params,
    build_structured_data,
    embed_images,
    insert_affiliate_link,
    insert_authoritative_citation,
    insert_lead_magnet_offer,
    insert_quiz_callout,
    insert_structured_data,
    select_lead_magnet,
)
from .models import EnhancementConfig, EnhancementResult, ImageAsset, LeadMagnetOffer

__all__ = [
    "LEAD_MAGNET_MARKER",
    "LEAD_MAGNET_OFFERS",
    "ContentEnhancer",
    "add_utm_params",
    "build_structured_data",
    "embed_images",
    "insert_affiliate_link",
    "insert_authoritative_citation",
    "insert_lead_magnet_offer",
    "insert_quiz_callout",
    "insert_structured_data",
    "select_lead_magnet",
    "EnhancementConfig",
    "EnhancementResult",
    "ImageAsset",
    "LeadMagnetOffer",
]
