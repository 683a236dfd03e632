"""
Gunicorn configuration for ShipRewards.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Worker configuration
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = 300  # Engine runs walk every customer
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'shiprewards'

# Preload so the scheduler starts once, in the master process
preload_app = True

graceful_timeout = 30


def on_starting(server):
    server.log.info("Starting ShipRewards server...")


def on_exit(server):
    server.log.info("ShipRewards server shutting down...")
