"""Outbound integrations: payment provider and email delivery."""
