from __future__ import annotations

import json
import logging
import os
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jose import JWTError, jwt
from passlib.context import CryptContext
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, create_engine, text
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from .achievements import (
    ACHIEVEMENT_IDS,
    UserStats,
    compute_best_streak,
    compute_current_streak,
    evaluate_achievements,
)
from .exceptions import InvalidAnswer, StressAssessmentError
from .stress_bank import Question, all_questions, get_question, validate_bank
from .stress_engine import (
    AssessmentResult,
    ScoringRange,
    create_quiz,
    evaluate,
    validate_scoring,
)

APP_VERSION = "1.0.0"
REPO_ROOT = Path(__file__).resolve().parents[3]
load_dotenv(REPO_ROOT / ".env")


def resolve_db_path() -> str:
    db_env = (os.getenv("MINDSPACE_DB_PATH") or os.getenv("DB_PATH") or "").strip()
    db_path = Path(db_env) if db_env else (REPO_ROOT / "mindspace.db")
    if not db_path.is_absolute():
        db_path = REPO_ROOT / db_path
    return str(db_path)


def get_logger(name: str = "mindspace", level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(handler)
    logger.setLevel((level or os.getenv("MINDSPACE_LOG_LEVEL") or "INFO").upper())
    return logger


logger = get_logger()

DB_PATH = resolve_db_path()
DATABASE_URL = f"sqlite:///{DB_PATH}"
SECRET_KEY = os.getenv("MINDSPACE_SECRET_KEY", "CHANGE_ME")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("MINDSPACE_TOKEN_MINUTES", str(60 * 24)))
DEFAULT_SAMPLE_SIZE = int(os.getenv("MINDSPACE_DEFAULT_SAMPLE_SIZE", "10"))

MOOD_LABELS = {1: "very-sad", 2: "sad", 3: "neutral", 4: "happy", 5: "very-happy"}

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    badges_json = Column(String, nullable=False, default="[]")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    assessments = relationship("StressAssessment", back_populates="user")
    mood_logs = relationship("MoodLog", back_populates="user")


class StressAssessment(Base):
    __tablename__ = "stress_assessments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    max_score = Column(Integer, nullable=False)
    level = Column(String, nullable=False, index=True)
    questions_json = Column(String, nullable=False, default="[]")
    completed_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = relationship("User", back_populates="assessments")


class MoodLog(Base):
    __tablename__ = "mood_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    mood = Column(Integer, nullable=False)
    mood_label = Column(String, nullable=False)
    notes = Column(String, nullable=True)
    tags_json = Column(String, nullable=False, default="[]")
    entry_date = Column(Date, default=date.today, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="mood_logs")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str


class RegisterRequest(BaseModel):
    email: str
    password: str


class OptionResponse(BaseModel):
    value: int
    label: str


class QuestionResponse(BaseModel):
    id: str
    question: str
    options: List[OptionResponse]


class ScoringRangeResponse(BaseModel):
    min: int
    max: int
    level: str
    description: str
    tag: str


class QuizResponse(BaseModel):
    id: str
    title: str
    description: str
    max_score: int
    questions: List[QuestionResponse]
    scoring: List[ScoringRangeResponse]


class EvaluateRequest(BaseModel):
    question_ids: List[str]
    answers: Dict[str, Any]


class EvaluateResponse(BaseModel):
    total_score: int
    max_score: int
    tier: ScoringRangeResponse
    recommended_steps: List[str]


class AssessmentAnswer(BaseModel):
    question_id: str
    question: str
    answer: int
    options: List[OptionResponse]


class AssessmentRecord(BaseModel):
    id: int
    score: int
    max_score: int
    level: str
    completed_at: datetime
    questions: List[AssessmentAnswer]
    recommended_steps: Optional[List[str]] = None


class MoodCreate(BaseModel):
    mood: int = Field(ge=1, le=5)
    note: Optional[str] = Field(default=None, max_length=500)
    tags: List[str] = []
    entry_date: Optional[date] = None


class MoodUpdate(BaseModel):
    mood: Optional[int] = Field(default=None, ge=1, le=5)
    note: Optional[str] = Field(default=None, max_length=500)
    tags: Optional[List[str]] = None


class MoodResponse(BaseModel):
    id: int
    mood: str
    mood_score: int
    note: Optional[str] = None
    tags: List[str]
    entry_date: str
    created_at: datetime
    streak_count: Optional[int] = None


class AchievementResponse(BaseModel):
    id: str
    title: str
    description: str
    category: str
    requirement: int
    current_progress: int
    is_unlocked: bool
    newly_unlocked: bool


class AchievementsResponse(BaseModel):
    total_mood_logs: int
    streak_count: int
    best_streak: int
    badges: List[str]
    achievements: List[AchievementResponse]


class AchievementUnlockRequest(BaseModel):
    achievement_id: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    run_self_checks()
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="MindSpace API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.exception_handler(StressAssessmentError)
async def stress_assessment_error_handler(request: Request, exc: StressAssessmentError) -> JSONResponse:
    if exc.client_error:
        return JSONResponse(
            status_code=400,
            content={"detail": exc.message, "code": exc.code, "details": exc.details},
        )
    logger.error("Assessment configuration fault on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": exc.code},
    )


def run_self_checks() -> None:
    questions = all_questions()
    validate_bank(questions)
    validate_scoring(questions)
    logger.info("Stress question bank loaded: %d questions, scoring policy covers all sample sizes.", len(questions))


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError as exc:
        raise credentials_exception from exc

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None:
        raise credentials_exception
    return user


def is_dev_mode() -> bool:
    value = os.getenv("MINDSPACE_DEV_MODE", "").strip().lower()
    alt = os.getenv("DEV_MODE", "").strip().lower()
    return value in {"1", "true", "yes", "on"} or alt in {"1", "true", "yes", "on"}


def question_payload(question: Question) -> QuestionResponse:
    return QuestionResponse(
        id=question.id,
        question=question.prompt,
        options=[OptionResponse(value=o.value, label=o.label) for o in question.options],
    )


def range_payload(item: ScoringRange) -> ScoringRangeResponse:
    return ScoringRangeResponse(
        min=item.min_score,
        max=item.max_score,
        level=item.level,
        description=item.description,
        tag=item.tag,
    )


def resolve_quiz_questions(question_ids: List[str]) -> List[Question]:
    seen = set()
    questions = []
    for question_id in question_ids:
        if question_id in seen:
            raise InvalidAnswer(f"Question {question_id} appears more than once in the quiz.", question_id)
        seen.add(question_id)
        questions.append(get_question(question_id))
    return questions


def assessment_record(row: StressAssessment, result: Optional[AssessmentResult] = None) -> AssessmentRecord:
    return AssessmentRecord(
        id=row.id,
        score=row.score,
        max_score=row.max_score,
        level=row.level,
        completed_at=row.completed_at,
        questions=[AssessmentAnswer(**item) for item in json.loads(row.questions_json or "[]")],
        recommended_steps=result.recommended_steps if result else None,
    )


def mood_payload(row: MoodLog, streak_count: Optional[int] = None) -> MoodResponse:
    return MoodResponse(
        id=row.id,
        mood=row.mood_label,
        mood_score=row.mood,
        note=row.notes,
        tags=json.loads(row.tags_json or "[]"),
        entry_date=row.entry_date.isoformat(),
        created_at=row.created_at,
        streak_count=streak_count,
    )


def fetch_mood_dates(user_id: int, db: Session) -> List[date]:
    rows = db.query(MoodLog.entry_date).filter(MoodLog.user_id == user_id).distinct().all()
    return sorted({row[0] for row in rows if row[0]})


def load_badges(user: User) -> List[str]:
    try:
        badges = json.loads(user.badges_json or "[]")
    except ValueError:
        logger.warning("Discarding unreadable badges for user %s", user.id)
        return []
    return [badge for badge in badges if isinstance(badge, str)]


@app.get("/health")
def health() -> dict:
    db_status = "ok"
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        db_status = "error"
    return {
        "status": "ok",
        "version": APP_VERSION,
        "db": db_status,
        "dev_mode": is_dev_mode(),
    }


@app.get("/meta")
def meta() -> dict:
    return {
        "version": APP_VERSION,
        "dev_mode": is_dev_mode(),
        "db_path": DB_PATH,
        "question_bank_size": len(all_questions()),
        "default_sample_size": DEFAULT_SAMPLE_SIZE,
    }


@app.post("/auth/register", response_model=TokenResponse)
def register_user(payload: RegisterRequest, db: Session = Depends(get_db)) -> TokenResponse:
    existing = db.query(User).filter(User.email == payload.email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    if len(payload.password.encode("utf-8")) > 72:
        raise HTTPException(
            status_code=400,
            detail="Password too long (bcrypt limit is 72 bytes). Use a shorter password.",
        )
    try:
        hashed_password = get_password_hash(payload.password)
    except Exception as exc:
        logger.exception("Password hashing failed")
        raise HTTPException(
            status_code=500,
            detail="Unable to process password at this time.",
        ) from exc
    user = User(email=payload.email, hashed_password=hashed_password)
    db.add(user)
    db.commit()
    db.refresh(user)
    token = create_access_token({"sub": str(user.id), "email": user.email})
    return TokenResponse(access_token=token, token_type="bearer")


@app.post("/auth/login", response_model=TokenResponse)
def login_user(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
) -> TokenResponse:
    user = db.query(User).filter(User.email == form_data.username).first()
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Invalid email or password")
    token = create_access_token({"sub": str(user.id), "email": user.email})
    return TokenResponse(access_token=token, token_type="bearer")


@app.get("/stress/quiz", response_model=QuizResponse)
def stress_quiz(sample_size: int = Query(DEFAULT_SAMPLE_SIZE)) -> QuizResponse:
    quiz = create_quiz(sample_size)
    return QuizResponse(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        max_score=quiz.max_score,
        questions=[question_payload(q) for q in quiz.questions],
        scoring=[range_payload(item) for item in quiz.scoring],
    )


@app.post("/stress/evaluate", response_model=EvaluateResponse)
def stress_evaluate(payload: EvaluateRequest) -> EvaluateResponse:
    questions = resolve_quiz_questions(payload.question_ids)
    result = evaluate(questions, payload.answers)
    return EvaluateResponse(
        total_score=result.total_score,
        max_score=result.max_score,
        tier=range_payload(result.tier),
        recommended_steps=result.recommended_steps,
    )


@app.post("/stress/assessments", response_model=AssessmentRecord)
def save_stress_assessment(
    payload: EvaluateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AssessmentRecord:
    questions = resolve_quiz_questions(payload.question_ids)
    result = evaluate(questions, payload.answers)
    answered = [
        {
            "question_id": question.id,
            "question": question.prompt,
            "answer": payload.answers[question.id],
            "options": [{"value": o.value, "label": o.label} for o in question.options],
        }
        for question in questions
    ]
    row = StressAssessment(
        user_id=user.id,
        score=result.total_score,
        max_score=result.max_score,
        level=result.tier.level,
        questions_json=json.dumps(answered),
        completed_at=datetime.utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Stored stress assessment %s for user %s (%s)", row.id, user.id, row.level)
    return assessment_record(row, result)


@app.get("/stress/assessments", response_model=List[AssessmentRecord])
def list_stress_assessments(
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[AssessmentRecord]:
    rows = (
        db.query(StressAssessment)
        .filter(StressAssessment.user_id == user.id)
        .order_by(StressAssessment.completed_at.desc(), StressAssessment.id.desc())
        .limit(limit)
        .all()
    )
    return [assessment_record(row) for row in rows]


@app.post("/mood", response_model=MoodResponse)
def log_mood(
    payload: MoodCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MoodResponse:
    today = date.today()
    entry_date = payload.entry_date or today
    if not is_dev_mode():
        if payload.entry_date and payload.entry_date != today:
            raise HTTPException(
                status_code=400,
                detail="entry_date must be today unless dev mode is enabled.",
            )
        entry_date = today

    tags = [tag.strip() for tag in payload.tags if tag.strip()]
    row = MoodLog(
        user_id=user.id,
        mood=payload.mood,
        mood_label=MOOD_LABELS[payload.mood],
        notes=payload.note,
        tags_json=json.dumps(tags),
        entry_date=entry_date,
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    streak = compute_current_streak(fetch_mood_dates(user.id, db), today)
    return mood_payload(row, streak_count=streak)


@app.get("/mood", response_model=List[MoodResponse])
def list_moods(
    days: int = Query(30, ge=1, le=365),
    limit: int = Query(30, ge=1, le=365),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[MoodResponse]:
    start_date = date.today() - timedelta(days=days - 1)
    rows = (
        db.query(MoodLog)
        .filter(MoodLog.user_id == user.id, MoodLog.entry_date >= start_date)
        .order_by(MoodLog.entry_date.desc(), MoodLog.created_at.desc())
        .limit(limit)
        .all()
    )
    return [mood_payload(row) for row in rows]


def get_user_mood(mood_id: int, user: User, db: Session) -> MoodLog:
    row = db.query(MoodLog).filter(MoodLog.id == mood_id, MoodLog.user_id == user.id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Mood log not found")
    return row


@app.patch("/mood/{mood_id}", response_model=MoodResponse)
def update_mood(
    mood_id: int,
    payload: MoodUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MoodResponse:
    row = get_user_mood(mood_id, user, db)
    if payload.mood is not None:
        row.mood = payload.mood
        row.mood_label = MOOD_LABELS[payload.mood]
    if payload.note is not None:
        row.notes = payload.note
    if payload.tags is not None:
        row.tags_json = json.dumps([tag.strip() for tag in payload.tags if tag.strip()])
    db.commit()
    db.refresh(row)
    return mood_payload(row)


@app.delete("/mood/{mood_id}")
def delete_mood(
    mood_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    row = get_user_mood(mood_id, user, db)
    db.delete(row)
    db.commit()
    logger.info("Deleted mood log %s for user %s", mood_id, user.id)
    return {"message": "Mood log deleted"}


@app.get("/achievements", response_model=AchievementsResponse)
def list_achievements(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AchievementsResponse:
    total = db.query(MoodLog).filter(MoodLog.user_id == user.id).count()
    dates = fetch_mood_dates(user.id, db)
    streak = compute_current_streak(dates, date.today())
    badges = load_badges(user)
    statuses = evaluate_achievements(UserStats(total_mood_logs=total, streak_count=streak), badges)
    return AchievementsResponse(
        total_mood_logs=total,
        streak_count=streak,
        best_streak=compute_best_streak(dates),
        badges=badges,
        achievements=[AchievementResponse(**vars(item)) for item in statuses],
    )


@app.post("/achievements")
def unlock_achievement(
    payload: AchievementUnlockRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    if payload.achievement_id not in ACHIEVEMENT_IDS:
        raise HTTPException(status_code=400, detail=f"Unknown achievement ID: {payload.achievement_id}")
    badges = load_badges(user)
    if payload.achievement_id not in badges:
        badges.append(payload.achievement_id)
        user.badges_json = json.dumps(badges)
        db.commit()
    return {"success": True, "badges": badges}
