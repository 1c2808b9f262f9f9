# exam_service/db/base.py
from sqlalchemy.orm import declarative_base

# tables register themselves when exam_service.models is imported
Base = declarative_base()
