"""
Authorization Policies
=====================================
Role-based scope rules for time recordings, statistics and teams, one policy
class per role so handlers never branch on the role themselves.

Policies:
- AdminPolicy: every user, every action
- ManagerPolicy: self plus members of the teams the manager owns
- EmployeePolicy: self only, read and create

Usage:
    policy = policy_for(current_user)
    if not policy.can_access(db, target_user_id, Action.update):
        raise HTTPException(status_code=403, ...)
"""

import enum
from typing import List, Optional
from sqlalchemy.orm import Session
from app.core.security import CurrentUser
from app.models.user import UserRole
from app.models.team import Team, TeamMember

class Action(str, enum.Enum):
    read = "read"
    create = "create"
    update = "update"
    delete = "delete"

def team_member_ids_for_manager(db: Session, manager_id: int) -> List[int]:
    rows = (
        db.query(TeamMember.id_user)
        .join(Team, Team.id == TeamMember.id_team)
        .filter(Team.id_manager == manager_id)
        .distinct()
        .all()
    )
    return [row.id_user for row in rows]

def is_member_of_managed_team(db: Session, manager_id: int, user_id: int) -> bool:
    return db.query(TeamMember).join(Team, Team.id == TeamMember.id_team).filter(
        Team.id_manager == manager_id,
        TeamMember.id_user == user_id
    ).first() is not None

class AccessPolicy:
    def __init__(self, user: CurrentUser):
        self.user = user

    def can_access(self, db: Session, target_user_id: int, action: Action) -> bool:
        raise NotImplementedError

    def visible_user_ids(self, db: Session) -> Optional[List[int]]:
        """User ids whose records are visible; None means no restriction."""
        raise NotImplementedError

    def can_view_team(self, db: Session, team: Team) -> bool:
        if team.id_manager == self.user.id:
            return True
        return db.query(TeamMember).filter(
            TeamMember.id_team == team.id,
            TeamMember.id_user == self.user.id
        ).first() is not None

class AdminPolicy(AccessPolicy):
    def can_access(self, db, target_user_id, action):
        return True

    def visible_user_ids(self, db):
        return None

    def can_view_team(self, db, team):
        return True

class ManagerPolicy(AccessPolicy):
    def can_access(self, db, target_user_id, action):
        if target_user_id == self.user.id:
            return True
        return is_member_of_managed_team(db, self.user.id, target_user_id)

    def visible_user_ids(self, db):
        member_ids = team_member_ids_for_manager(db, self.user.id)
        if self.user.id not in member_ids:
            member_ids.append(self.user.id)
        return member_ids

class EmployeePolicy(AccessPolicy):
    def can_access(self, db, target_user_id, action):
        if action in (Action.update, Action.delete):
            return False
        return target_user_id == self.user.id

    def visible_user_ids(self, db):
        return [self.user.id]

_POLICIES = {
    UserRole.admin: AdminPolicy,
    UserRole.manager: ManagerPolicy,
    UserRole.employee: EmployeePolicy,
}

def policy_for(user: CurrentUser) -> AccessPolicy:
    return _POLICIES[user.role](user)
