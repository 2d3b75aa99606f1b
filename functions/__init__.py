"""
Function plugins loaded by botcore.plugin_loader.
"""
