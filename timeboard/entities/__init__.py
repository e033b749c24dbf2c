from timeboard.entities.team_member import TeamMember, MemberStatus
from timeboard.entities.registry_document import RegistryDocument

__all__ = ["TeamMember", "MemberStatus", "RegistryDocument"]
