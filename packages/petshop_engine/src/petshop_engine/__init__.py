"""
Pet Shop Engine

Domain package for the multi-tenant pet shop / pet hotel platform.

Components:
- entitlements: plan and module resolution, navigation guard
- identity: session context, tenant onboarding and invites
- segmentation: client campaign buckets and inactivity threshold
- campaigns: recipient filtering and webhook dispatch
- fiscal: NFC-e issuance through Focus NFe
- calendar: Google Calendar OAuth, API client and inbound sync
- dashboard: daily and monthly operational rollups
- realtime: table change notifications over Redis Streams
"""

__version__ = "0.1.0"
