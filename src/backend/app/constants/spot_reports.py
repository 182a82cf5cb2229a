# app/constants/spot_reports.py
from enum import Enum

# 通報フォームで選べる区分
CATEGORY_CLOSED = 'Spot closed or removed'
CATEGORY_INACCURATE = 'Inaccurate location or details'
CATEGORY_UNSAFE = 'Unsafe conditions'
CATEGORY_DUPLICATE = 'Duplicate spot'
CATEGORY_OTHER = 'Other'

REPORT_CATEGORIES = [
    CATEGORY_CLOSED,
    CATEGORY_INACCURATE,
    CATEGORY_UNSAFE,
    CATEGORY_DUPLICATE,
    CATEGORY_OTHER,
]

class ReportStatus(str, Enum):
    NEW = 'New'
    IN_PROGRESS = 'In Progress'
    DONE = 'Done'
