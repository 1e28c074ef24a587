"""Core hub handoff components."""
