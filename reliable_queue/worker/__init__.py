"""
Worker module.
Contains the item handler registry and the claim/process loop.
"""
