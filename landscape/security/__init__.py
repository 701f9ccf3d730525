"""Security tiers, approvals and the operation audit trail."""
