from app.models.assignment import Assignment  # noqa: F401
from app.models.course import Course  # noqa: F401
from app.models.exam import Exam  # noqa: F401
from app.models.leave import LeaveRequest  # noqa: F401
from app.models.swap import SwapRequest  # noqa: F401
from app.models.task import Task  # noqa: F401
from app.models.user import User  # noqa: F401
