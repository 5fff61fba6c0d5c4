"""
Domain service layer for the player admin API.

Plain functions over a SQLAlchemy Core connection, shared by the blueprints:
  - record_codec: JSON-in-column decoding for money/job/info
  - player_directory: account search and character lookups
  - job_catalog: jobs and grade ladders
  - job_assignment: validated job changes on a character
  - event_log: append-only server event store
"""
