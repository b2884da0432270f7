"""Database models for sessions, the activity log, and identities."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, JSON, \
    String, text
from flask_sqlalchemy import SQLAlchemy

db: SQLAlchemy = SQLAlchemy()


class DBUser(db.Model):  # type: ignore
    """
    Identity table, owned by the user-management collaborator.

    This package only reads rows and stamps ``last_login``.
    """

    __tablename__ = 'users'

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    username = Column(String(64), nullable=False, server_default=text("''"))
    password_hash = Column(String(255))
    role = Column(String(16), nullable=False, index=True,
                  server_default=text("'user'"))
    is_active = Column(Boolean, nullable=False, server_default=text("1"))
    is_verified = Column(Boolean, nullable=False, server_default=text("0"))
    last_login = Column(DateTime)


class DBSession(db.Model):  # type: ignore
    """
    Login sessions.

    +---------------+--------------+------+-----+
    | Field         | Type         | Null | Key |
    +---------------+--------------+------+-----+
    | session_id    | int          | NO   | PRI |
    | token         | varchar(96)  | NO   | UNI |
    | user_id       | varchar(64)  | NO   | MUL |
    | expires_at    | datetime     | NO   | MUL |
    | created_at    | datetime     | NO   |     |
    | last_accessed | datetime     | YES  |     |
    | ip_address    | varchar(45)  | YES  |     |
    | user_agent    | varchar(500) | YES  |     |
    +---------------+--------------+------+-----+

    Datetimes are stored as naive UTC.
    """

    __tablename__ = 'user_sessions'

    session_id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(96), nullable=False, unique=True)
    user_id = Column(String(64), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    last_accessed = Column(DateTime)
    ip_address = Column(String(45))
    user_agent = Column(String(500))


class DBActivityLog(db.Model):  # type: ignore
    """Append-only audit trail of security-relevant events."""

    __tablename__ = 'user_activity_logs'
    __table_args__ = (
        Index('ix_user_activity_logs_user_created', 'user_id', 'created_at'),
    )

    entry_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64))
    action = Column(String(100), nullable=False)
    description = Column(String(255))
    ip_address = Column(String(45))
    user_agent = Column(String(500))
    extra = Column('metadata', JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False)
