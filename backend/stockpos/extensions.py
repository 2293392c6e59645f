# Overview: Flask extension instances for the database-backed state store.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
