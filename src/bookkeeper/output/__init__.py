"""Output layer — rendering ServiceResult for terminals and machines."""
