"""
HTTP API blueprints for ShipRewards.
"""
