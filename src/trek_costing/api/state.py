"""
Shared API state - one engine, catalog and quote service per process.
"""
from ..config.settings import get_settings
from ..data.trek_catalog import TrekCatalog
from ..engine.pricing_engine import PricingEngine
from ..services.quote_service import QuoteService

settings = get_settings()
engine = PricingEngine(settings=settings)
catalog = TrekCatalog(settings=settings, engine=engine)
quote_service = QuoteService(engine=engine, settings=settings)
