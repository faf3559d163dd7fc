"""
Database provider registry.

Importing this package registers the built-in providers:
sqlite3 / sqlite, psycopg / postgresql and sqlalchemy.
"""
from dbcontext.providers.alchemy import SQLAlchemyProvider as SQLAlchemyProvider
from dbcontext.providers.alchemy import dispose_all_engines as dispose_all_engines
from dbcontext.providers.base import ProviderFactory as ProviderFactory
from dbcontext.providers.base import get_available_providers as get_available_providers
from dbcontext.providers.base import get_factory as get_factory
from dbcontext.providers.base import is_registered_provider as is_registered_provider
from dbcontext.providers.base import register_provider as register_provider
from dbcontext.providers.base import unregister_provider as unregister_provider
from dbcontext.providers.postgres import PostgresProvider as PostgresProvider
from dbcontext.providers.sqlite import SQLiteProvider as SQLiteProvider
