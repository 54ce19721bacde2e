"""Settings, error types, role checks, security helpers and response envelopes."""
