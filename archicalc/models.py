import secrets
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _share_token() -> str:
    # Tokens are issued by the store, never chosen by the client
    return secrets.token_urlsafe(24)


class User(Base):
    """Accounts. Every user-scoped table below is filtered by user_id."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    auth_tokens = relationship("AuthToken", back_populates="user", cascade="all, delete-orphan")
    calculations = relationship("Calculation", back_populates="user", cascade="all, delete-orphan")
    projects = relationship("Project", back_populates="user", cascade="all, delete-orphan")


class AuthToken(Base):
    """JWT refresh token storage — access tokens are stateless."""
    __tablename__ = "auth_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    token_hash = Column(String, nullable=False)
    token_type = Column(String, default="refresh")  # 'access' | 'refresh'
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="auth_tokens")


class MaterialPrice(Base):
    """Per-user override of a catalog composition price. Last write wins."""
    __tablename__ = "material_prices"
    __table_args__ = (
        UniqueConstraint("material_key", "composition_index", "user_id", name="uq_material_price_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    material_key = Column(String, nullable=False)
    composition_index = Column(Integer, nullable=False)
    composition_name = Column(String, nullable=False)
    unit = Column(String, nullable=False)
    unit_price = Column(Float, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserSettings(Base):
    """One row per user. NULL columns mean 'use the default'."""
    __tablename__ = "user_settings"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    theme = Column(String, nullable=True)  # 'light' | 'dark' | 'system'
    email_notifications = Column(Boolean, nullable=True)
    default_margin = Column(Float, nullable=True)
    auto_save_calculations = Column(Boolean, nullable=True)
    decimal_places = Column(Integer, nullable=True)
    bdi_percent = Column(Float, nullable=True)
    social_charges_percent = Column(Float, nullable=True)
    technical_hour_rate = Column(Float, nullable=True)
    material_waste_percent = Column(Float, nullable=True)
    language = Column(String, nullable=True)
    unit_preference = Column(String, nullable=True)
    updated_at = Column(DateTime, nullable=True)


class Project(Base):
    """Groups saved calculations for one client or site. Deleting a project keeps its calculations."""
    __tablename__ = "projects"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    client_name = Column(String, nullable=True)
    address = Column(String, nullable=True)
    status = Column(String, nullable=False, default="active")  # 'active' | 'completed' | 'archived'
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="projects")
    calculations = relationship("Calculation", back_populates="project")


class Calculation(Base):
    """A saved calculator run — inputs and result snapshots."""
    __tablename__ = "calculations"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    project_id = Column(String, ForeignKey("projects.id"), nullable=True, index=True)
    calculator_type = Column(String, nullable=False)
    name = Column(String, nullable=True)
    input_data = Column(JSON, default=dict)
    result = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="calculations")
    project = relationship("Project", back_populates="calculations")
    shares = relationship("SharedCalculation", back_populates="calculation", cascade="all, delete-orphan")


class SharedCalculation(Base):
    """Share link for a calculation. Owners deactivate it; it is only removed along with its calculation."""
    __tablename__ = "shared_calculations"

    id = Column(String, primary_key=True, default=_uuid)
    calculation_id = Column(String, ForeignKey("calculations.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    share_token = Column(String, unique=True, nullable=False, default=_share_token)
    expires_at = Column(DateTime, nullable=True)  # NULL = never expires
    is_active = Column(Boolean, default=True, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    calculation = relationship("Calculation", back_populates="shares")
