"""Pure domain layer: values, DTOs, threshold rules and ledger replay."""
