"""
Profile sharing client: deploy-once coordination and field encoding for the ProfileSharing contract
"""
__version__ = "0.1.0"
