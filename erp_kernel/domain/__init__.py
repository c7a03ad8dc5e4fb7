"""Pure domain values for the ERP kernel (no database access)."""
