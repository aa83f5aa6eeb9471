# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .profile import Profile  # noqa: F401
from .workspace import Workspace, WorkspaceMember  # noqa: F401
from .board import Board, BoardMember  # noqa: F401
from .board_list import BoardList  # noqa: F401
from .card import Card, CardMember  # noqa: F401
from .label import Label, CardLabel  # noqa: F401
from .comment import Comment  # noqa: F401
from .checklist import Checklist, ChecklistItem  # noqa: F401
from .activity import Activity  # noqa: F401
from .attachment import CardAttachment  # noqa: F401
from .invitation import Invitation  # noqa: F401
