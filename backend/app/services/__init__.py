"""Service layer: notification fan-out, delivery and email transport."""
