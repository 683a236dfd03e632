"""
Shipment transaction model.

One row per shipment billed to a customer. Rows are created by the
transaction import flow; the quarterly engine later back-fills
``points_earned`` exactly once.
"""
from datetime import datetime
from ..extensions import db


class Transaction(db.Model):
    """
    A shipment billed to a customer.

    Monetary columns are whole units of the base currency (no sub-units).
    ``discount_amount`` is fixed at creation (Hello Discount); ``points_earned``
    stays NULL until the quarterly engine awards points for it.
    """
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.String(64), nullable=False, index=True)

    # Shipment details
    date = db.Column(db.Date, nullable=False)
    service = db.Column(db.String(100))
    origin = db.Column(db.String(200))
    destination = db.Column(db.String(200))
    invoice_no = db.Column(db.String(100))

    # Amounts
    publish_rate = db.Column(db.BigInteger, nullable=False, default=0)
    discount_amount = db.Column(db.BigInteger, nullable=False, default=0)
    points_earned = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_transactions_customer_date', 'customer_id', 'date'),
    )

    def __repr__(self):
        return f'<Transaction {self.id}: {self.publish_rate} for customer {self.customer_id} on {self.date}>'

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'date': self.date.isoformat() if self.date else None,
            'service': self.service,
            'origin': self.origin,
            'destination': self.destination,
            'invoice_no': self.invoice_no,
            'publish_rate': self.publish_rate,
            'discount_amount': self.discount_amount,
            'points_earned': self.points_earned,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
