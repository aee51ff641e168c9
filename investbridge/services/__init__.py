"""Engine services: audit log, assessments, portfolios, analytics, retention, inbox, scheduler."""
