"""
Flask extensions shared across the ShipRewards app.
"""
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Database (transactions, membership periods, reward ledgers, program configs)
db = SQLAlchemy()

# Migrations
migrate = Migrate()
