import structlog
from protean.domain import Domain

logger = structlog.get_logger(__name__)

_SQL_PROVIDERS = ("sqlite", "postgresql")


def sql_providers(domain: Domain) -> list[str]:
    """Names of the configured providers backed by an SQL database"""
    return [name for name, conn_info in domain.config["databases"].items() if conn_info["provider"] in _SQL_PROVIDERS]


def setup_db(domain: Domain):
    """Create the order and label tables (and protean's own) on every provider"""
    with domain.domain_context():
        domain.setup_database()
    logger.info("Database schema created", providers=sql_providers(domain))


def drop_db(domain: Domain):
    """Drop every table the domain created"""
    with domain.domain_context():
        domain.drop_database()
    logger.info("Database schema dropped", providers=sql_providers(domain))
