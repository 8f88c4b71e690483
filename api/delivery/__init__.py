"""Serving items by short path: availability, authorization, access logs."""
