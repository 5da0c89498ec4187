"""
Routers module - API endpoint handlers organized by feature.

- auth: Sign-up, sign-in, current user
- platforms: Platform credentials and Google Drive OAuth
- assets: Spreadsheet discovery, risk analysis and browsing
- governance: Findings for paid tiers
- reports: Account summary for paid tiers
- gmail: Gmail OAuth and sender cleanup
- oauth_callback: Shared OAuth callback handling (no routes)
"""
