from gorbagana.authority.base import Authority
from gorbagana.authority.program import ProgramAuthority, SlotsState

__all__ = ['Authority', 'ProgramAuthority', 'SlotsState']
