from app.models.person import Person, PersonRole  # noqa: F401
from app.models.cases import (  # noqa: F401
    Application,
    ApplicationStatus,
    Case,
    CaseStatus,
    IssueType,
    Urgency,
)
from app.models.strategy import (  # noqa: F401
    DeliveryStatus,
    DocumentDelivery,
    DocumentKind,
    GeneratedDocument,
    ReviewStatus,
)
from app.models.notification import (  # noqa: F401
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
