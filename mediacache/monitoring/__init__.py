"""Monitoring endpoints for mediacache."""
