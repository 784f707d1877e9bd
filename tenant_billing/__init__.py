"""Subscription lifecycle and entitlement service for tenant accounts."""
