"""muskoka: task ledger and result aggregation for distributed state-transition testing."""
