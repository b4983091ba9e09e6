"""Core infrastructure: config, logging, tracing, errors and the PXE client"""
