"""
Post-room archiving robot.

A small pipeline that:
- Fetches messages from the post-room mailbox (Microsoft Graph)
- Classifies them against a prioritized list of email types, using an LLM agent
  for structured extraction
- Archives, forwards or escalates each matched message
- Persists per-message flow state in blob storage so failed flows resume on the
  next poll
"""

__version__ = "1.0.0"
