"""SQLAlchemy Core definitions of the tables the purge reads and deletes.

The purge does not own these tables; the server (and its boards and
playbooks products) create and migrate them. Only the columns the
purge filters on are declared, which is enough to build parameterized
SELECT/DELETE statements and to create a throwaway copy of the schema
for tests (``metadata.create_all``).

Table families:
- core: users, posts, threads, reactions, channels and user-keyed rows
- boards: ``focalboard_*`` and the ``fileinfo`` rows of board attachments
- playbooks: ``ir_*``
"""

from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Column, MetaData, String, Table

metadata = MetaData()


def _id(name: str = "id") -> Column[str]:
    return Column(name, String(26), primary_key=True)


def _ref(name: str, *, primary_key: bool = False) -> Column[str]:
    return Column(name, String(26), primary_key=primary_key, nullable=False)


# -- Core ---------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    _id(),
    Column("email", String(128), nullable=False, default=""),
    Column("roles", String(256), nullable=False, default=""),
    Column("deleteat", BigInteger, nullable=False, default=0),
)

posts = Table(
    "posts",
    metadata,
    _id(),
    _ref("userid"),
    _ref("channelid"),
    Column("rootid", String(26), nullable=False, default=""),
)

threads = Table(
    "threads",
    metadata,
    _ref("postid", primary_key=True),
    _ref("channelid"),
)

threadmemberships = Table(
    "threadmemberships",
    metadata,
    _ref("postid", primary_key=True),
    _ref("userid", primary_key=True),
)

reactions = Table(
    "reactions",
    metadata,
    _ref("userid", primary_key=True),
    _ref("postid", primary_key=True),
    Column("emojiname", String(64), primary_key=True),
)

status = Table(
    "status",
    metadata,
    _ref("userid", primary_key=True),
    Column("status", String(32), nullable=False, default="offline"),
)

channels = Table(
    "channels",
    metadata,
    _id(),
    Column("name", String(64), nullable=False, default=""),
)

channelmembers = Table(
    "channelmembers",
    metadata,
    _ref("channelid", primary_key=True),
    _ref("userid", primary_key=True),
)

channelmemberhistory = Table(
    "channelmemberhistory",
    metadata,
    _ref("channelid", primary_key=True),
    _ref("userid", primary_key=True),
    Column("jointime", BigInteger, primary_key=True),
)

sidebarcategories = Table(
    "sidebarcategories",
    metadata,
    _id(),
    _ref("userid"),
)

sidebarchannels = Table(
    "sidebarchannels",
    metadata,
    _ref("channelid", primary_key=True),
    _ref("userid", primary_key=True),
    _ref("categoryid", primary_key=True),
)

productnoticeviewstate = Table(
    "productnoticeviewstate",
    metadata,
    _ref("userid", primary_key=True),
    Column("noticeid", String(26), primary_key=True),
)

fileinfo = Table(
    "fileinfo",
    metadata,
    _id(),
    Column("creatorid", String(26), nullable=False),
    Column("path", String(512), nullable=False),
)

# -- Boards -------------------------------------------------------------------

# Board membership rows owned by the boards product itself, never purged.
BOARDS_SYSTEM_USER_ID = "system"
# ``fileinfo.creatorid`` of attachments uploaded through boards.
BOARDS_FILE_CREATOR_ID = "boards"

focalboard_boards = Table(
    "focalboard_boards",
    metadata,
    _id(),
)

focalboard_board_members = Table(
    "focalboard_board_members",
    metadata,
    _ref("board_id", primary_key=True),
    _ref("user_id", primary_key=True),
)

focalboard_blocks = Table(
    "focalboard_blocks",
    metadata,
    _id(),
    _ref("board_id"),
    Column("fields", JSON, nullable=True),
)

focalboard_blocks_history = Table(
    "focalboard_blocks_history",
    metadata,
    _id(),
    _ref("board_id"),
    Column("insert_at", BigInteger, primary_key=True),
)

focalboard_boards_history = Table(
    "focalboard_boards_history",
    metadata,
    _id(),
    Column("insert_at", BigInteger, primary_key=True),
)

# -- Playbooks ----------------------------------------------------------------

ir_playbook = Table(
    "ir_playbook",
    metadata,
    _id(),
)

ir_playbookmember = Table(
    "ir_playbookmember",
    metadata,
    _ref("playbookid", primary_key=True),
    _ref("memberid", primary_key=True),
)

ir_playbookautofollow = Table(
    "ir_playbookautofollow",
    metadata,
    _ref("playbookid", primary_key=True),
    _ref("userid", primary_key=True),
)

ir_metricconfig = Table(
    "ir_metricconfig",
    metadata,
    _id(),
    _ref("playbookid"),
)

ir_category = Table(
    "ir_category",
    metadata,
    _id(),
    _ref("userid"),
)

ir_category_item = Table(
    "ir_category_item",
    metadata,
    _ref("categoryid", primary_key=True),
    _ref("itemid", primary_key=True),
)

ir_incident = Table(
    "ir_incident",
    metadata,
    _id(),
    Column("playbookid", String(26), nullable=False, default=""),
    Column("channelid", String(26), nullable=False, default=""),
)

ir_run_participants = Table(
    "ir_run_participants",
    metadata,
    _ref("incidentid", primary_key=True),
    _ref("userid", primary_key=True),
)

ir_metric = Table(
    "ir_metric",
    metadata,
    _ref("incidentid", primary_key=True),
    _ref("metricconfigid", primary_key=True),
)

ir_statusposts = Table(
    "ir_statusposts",
    metadata,
    _ref("incidentid", primary_key=True),
    _ref("postid", primary_key=True),
)

ir_timelineevent = Table(
    "ir_timelineevent",
    metadata,
    _id(),
    _ref("incidentid"),
)

ir_viewedchannel = Table(
    "ir_viewedchannel",
    metadata,
    _ref("channelid", primary_key=True),
    _ref("userid", primary_key=True),
)

ir_userinfo = Table(
    "ir_userinfo",
    metadata,
    _id(),
)

ir_channelaction = Table(
    "ir_channelaction",
    metadata,
    _id(),
    _ref("channelid"),
)
