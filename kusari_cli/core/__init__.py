"""
Service layer for kusari-cli commands: configuration, URL helpers and the
login / scan / upload services.
"""
