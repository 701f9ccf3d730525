"""landscape.integrations — Source ERP gateway modules.

All reads from a source ERP must go through a gateway in this package,
never via bare `requests` calls in extractors or services.  Every live
call is:
  - Authenticated (credentials injected by the gateway)
  - Retried with exponential backoff
  - Circuit-broken to prevent cascade failures
  - Surfaced as a SourceError kind on failure

Current gateways:
  source_gateway.MockSourceGateway — deterministic fixtures
  source_gateway.LiveSourceGateway — HTTP table-reader bridge
"""
