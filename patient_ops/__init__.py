"""
Patient Operations: appointments calendar, outreach activity log, roster, dashboard.

Structure:
- settings.py       : environment configuration (.env supported)
- statuses.py       : configurable appointment status set, referral/event types
- calendar_utils.py : ISO days, month grid, past-day rules
- formatters.py     : names, dates, times for display
- records.py        : typed records decoded from backend rows
- forms.py          : appointment / activity drafts, validation, payloads
- client.py         : HTTP table client for the data service
- services.py       : in-memory state + save workflows (record linking, roster)
- dashboard.py      : filters and aggregates for the dashboard
- db.py, models.py, store.py, api_main.py : the data service (SQLAlchemy + FastAPI)
- seed.py           : base roster (dentists, staff)
- cli.py            : init / list / serve
"""
