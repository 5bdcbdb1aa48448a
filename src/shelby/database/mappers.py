"""Mapper functions to convert SQLAlchemy models into domain entities.

Conversion happens inside the transaction that loaded the row, so lazy
relationships are still reachable.
"""

from shelby.domain import entities as domain
from shelby.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    CostCenter as ORMCostCenter,
    Document as ORMDocument,
    Entry as ORMEntry,
    Group as ORMGroup,
    Membership as ORMMembership,
    Person as ORMPerson,
    User as ORMUser,
)


def person_to_domain(orm_person: ORMPerson) -> domain.Person:
    """Convert SQLAlchemy Person model to domain Person entity."""
    return domain.Person(
        id=orm_person.id,
        name=orm_person.name,
        address=orm_person.address,
        email=orm_person.email,
        birthday=orm_person.birthday,
        comment=orm_person.comment,
    )


def group_to_domain(orm_group: ORMGroup) -> domain.Group:
    """Convert SQLAlchemy Group model to domain Group entity."""
    return domain.Group(id=orm_group.id, description=orm_group.description)


def membership_to_domain(orm_membership: ORMMembership) -> domain.Membership:
    """Convert SQLAlchemy Membership model to domain Membership entity."""
    return domain.Membership(
        id=orm_membership.id,
        person_id=orm_membership.person_id,
        group_id=orm_membership.group_id,
        person_name=orm_membership.person.name,
        group_description=orm_membership.group.description,
        comment=orm_membership.comment,
        updated=orm_membership.updated,
    )


def document_to_domain(orm_document: ORMDocument) -> domain.Document:
    """Convert SQLAlchemy Document model to domain Document entity."""
    return domain.Document(
        id=orm_document.id,
        storage_key=orm_document.storage_key,
        filename=orm_document.filename,
        mime_type=orm_document.mime_type,
        size=orm_document.size,
        checksum=orm_document.checksum,
        description=orm_document.description,
        from_person_id=orm_document.from_person_id,
        to_person_id=orm_document.to_person_id,
        processed_by=orm_document.processed_by,
        received=orm_document.received,
        reference_count=orm_document.reference_count,
        created_at=orm_document.created_at,
    )


def cost_center_to_domain(orm_cost_center: ORMCostCenter) -> domain.CostCenter:
    """Convert SQLAlchemy CostCenter model to domain CostCenter entity."""
    return domain.CostCenter(id=orm_cost_center.id, name=orm_cost_center.name)


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(id=orm_category.id, name=orm_category.name)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        code=orm_account.code,
        category_id=orm_account.category_id,
        cost_center_id=orm_account.cost_center_id,
        balance=orm_account.balance,
        created_at=orm_account.created_at,
    )


def entry_to_domain(orm_entry: ORMEntry) -> domain.Entry:
    """Convert SQLAlchemy Entry model to domain Entry entity."""
    reversed_by = orm_entry.reversed_by
    return domain.Entry(
        id=orm_entry.id,
        account_id=orm_entry.account_id,
        date=orm_entry.date,
        amount=orm_entry.amount,
        description=orm_entry.description,
        document_id=orm_entry.document_id,
        reverses_id=orm_entry.reverses_id,
        reversed_by_id=reversed_by.id if reversed_by is not None else None,
        created_by=orm_entry.created_by,
        created_at=orm_entry.created_at,
    )


def user_to_domain(orm_user: ORMUser) -> domain.User:
    """Convert SQLAlchemy User model to domain User entity."""
    return domain.User(
        id=orm_user.id,
        username=orm_user.username,
        active=orm_user.active,
        person_id=orm_user.person_id,
        created_at=orm_user.created_at,
    )
