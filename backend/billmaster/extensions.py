# Overview: Flask-SQLAlchemy and Flask-Migrate instances bound by create_app.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()
