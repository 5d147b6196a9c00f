"""Shipment acknowledgment records."""
