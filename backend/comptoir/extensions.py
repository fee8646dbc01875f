# Overview: Shared Flask-SQLAlchemy and Flask-Migrate instances, bound in create_app.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()

# SQLite cannot ALTER constraints in place: migrations run as batch table rebuilds
migrate = Migrate(render_as_batch=True, compare_type=True)
