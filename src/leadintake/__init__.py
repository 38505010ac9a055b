"""Lead Intake & Fulfillment Backend.

This package scores inbound contact inquiries, tracks quote requests
through the sales workflow, and delivers notification emails through a
durable, retrying queue.
"""

__version__ = "0.1.0"
