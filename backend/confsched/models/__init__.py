from confsched.models.activity_log import ActivityLog  # noqa: F401
from confsched.models.notification import (  # noqa: F401
    FINAL_SCHEDULE_NOTIFICATION,
    NotificationChannel,
    NotificationStatus,
    ScheduleNotification,
)
from confsched.models.schedule import ConferenceScheduleRecord  # noqa: F401
from confsched.models.scheduling_parameters import SchedulingParametersRecord  # noqa: F401
from confsched.models.submission import Submission  # noqa: F401
from confsched.models.user import User, UserRole  # noqa: F401
