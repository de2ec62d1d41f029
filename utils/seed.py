from models import db
from models.business import BUSINESS_TYPES, Business

DEFAULT_BUSINESS_NAMES = {
    "summit": "Summit Event Venue",
    "coworking": "The Hive Coworking",
    "spa": "Spa & Wellness",
    "fitness": "Fitness Studio",
    "voice_vault": "Voice Vault Studio",
    "photo_booth": "360 Photo Booth",
}

def seed_businesses():
    existing = {b.type for b in Business.query.all()}
    created = 0
    for business_type in BUSINESS_TYPES:
        if business_type not in existing:
            db.session.add(Business(type=business_type, name=DEFAULT_BUSINESS_NAMES[business_type]))
            created += 1
    db.session.commit()
    return created
