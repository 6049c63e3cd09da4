from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, Table, Text, UniqueConstraint, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Businesses(Base):
    __tablename__ = 'businesses'

    name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    timezone = Column(Text, nullable=False, server_default=text("'UTC'"))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    business_hours = relationship('BusinessHours', back_populates='business')
    bookable_items = relationship('BookableItems', back_populates='business')
    staff_members = relationship('StaffMembers', back_populates='business')
    bookings = relationship('Bookings', back_populates='business')


class BusinessHours(Base):
    __tablename__ = 'business_hours'
    __table_args__ = (
        CheckConstraint('day_of_week BETWEEN 0 AND 6'),
    )

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(Text, nullable=False)  # "HH:MM"
    end_time = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)

    business = relationship('Businesses', back_populates='business_hours')


t_staff_capabilities = Table(
    'staff_capabilities', metadata,
    Column('staff_id', ForeignKey('staff_members.id', ondelete='CASCADE'), nullable=False),
    Column('bookable_item_id', ForeignKey('bookable_items.id', ondelete='CASCADE'), nullable=False),
    UniqueConstraint('staff_id', 'bookable_item_id')
)


class BookableItems(Base):
    __tablename__ = 'bookable_items'
    __table_args__ = (
        CheckConstraint('max_capacity >= 1'),
    )

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    duration = Column(Text, nullable=False)  # "30 minutes", "1 hour"
    max_capacity = Column(Integer, nullable=False, server_default=text('1'))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    requires_staff = Column(Integer, nullable=False, server_default=text('0'))
    id = Column(Integer, primary_key=True)
    description = Column(Text)
    version = Column(Integer, nullable=False, default=0, server_default=text('0'))

    __mapper_args__ = {
        'version_id_col': version,
        'version_id_generator': False,
    }

    business = relationship('Businesses', back_populates='bookable_items')
    staff = relationship('StaffMembers', secondary=t_staff_capabilities, back_populates='capabilities')
    bookings = relationship('Bookings', back_populates='bookable_item')


class StaffMembers(Base):
    __tablename__ = 'staff_members'

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    display_name = Column(Text)
    version = Column(Integer, nullable=False, default=0, server_default=text('0'))

    __mapper_args__ = {
        'version_id_col': version,
        'version_id_generator': False,
    }

    business = relationship('Businesses', back_populates='staff_members')
    capabilities = relationship('BookableItems', secondary=t_staff_capabilities, back_populates='staff')
    availability = relationship('StaffAvailability', back_populates='staff')
    assignments = relationship('StaffAssignments', back_populates='staff')


class StaffAvailability(Base):
    __tablename__ = 'staff_availability'
    __table_args__ = (
        CheckConstraint('day_of_week BETWEEN 0 AND 6'),
    )

    staff_id = Column(ForeignKey('staff_members.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)

    staff = relationship('StaffMembers', back_populates='availability')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        CheckConstraint('unit_count >= 1'),
        CheckConstraint('date_start < date_end'),
        Index('ix_bookings_item_start', 'bookable_item_id', 'date_start'),
    )

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    bookable_item_id = Column(ForeignKey('bookable_items.id'), nullable=False)
    customer_id = Column(Integer, nullable=False)
    date_start = Column(Text, nullable=False)  # ISO-8601 UTC
    date_end = Column(Text, nullable=False)
    unit_count = Column(Integer, nullable=False, server_default=text('1'))
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    id = Column(Integer, primary_key=True)
    notes = Column(Text)
    cancel_reason = Column(Text)

    business = relationship('Businesses', back_populates='bookings')
    bookable_item = relationship('BookableItems', back_populates='bookings')
    assignment = relationship('StaffAssignments', uselist=False, back_populates='booking')

    @property
    def staff_id(self):
        return self.assignment.staff_id if self.assignment else None


class StaffAssignments(Base):
    __tablename__ = 'staff_assignments'

    booking_id = Column(ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False, unique=True)
    staff_id = Column(ForeignKey('staff_members.id'), nullable=False)
    id = Column(Integer, primary_key=True)
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    booking = relationship('Bookings', back_populates='assignment')
    staff = relationship('StaffMembers', back_populates='assignments')
