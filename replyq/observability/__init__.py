"""Observability - logging, telemetry counters, structured events"""
