# case_review_service/app/__init__.py
import logging

logger = logging.getLogger(__name__)
