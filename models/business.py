from datetime import datetime
from models.db import db

BUSINESS_TYPES = ("summit", "coworking", "spa", "fitness", "voice_vault", "photo_booth")


class Business(db.Model):
    __tablename__ = "businesses"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(30), nullable=False, unique=True, index=True)  # one of BUSINESS_TYPES

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
