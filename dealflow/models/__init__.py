"""
Database models.

Every model module imports ``db`` from here:

    from dealflow.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
