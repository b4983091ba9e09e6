"""
Services: field codec, address book, deployment and contract interaction
"""
