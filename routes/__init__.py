from routes.health import health_bp
from routes.availability import availability_bp
from routes.holds import holds_bp
from routes.admin import admin_bp
from routes.audit_logs import audit_bp
from routes.stripe_webhook import webhook_bp

__all__ = ["health_bp", "availability_bp", "holds_bp", "admin_bp", "audit_bp", "webhook_bp"]
