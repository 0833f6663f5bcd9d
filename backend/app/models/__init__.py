"""SQLAlchemy models."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import all models so Base.metadata.create_all() picks them up
from app.models.alert import Alert  # noqa: E402, F401
from app.models.notification import Notification  # noqa: E402, F401
from app.models.portfolio_snapshot import PortfolioSnapshot  # noqa: E402, F401
