from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional

from app.models.question_models import Difficulty, Question

RoomStatus = Literal["waiting", "in_progress", "complete"]


class Player(BaseModel):
    id: str
    nickname: str
    isHost: bool = False
    score: int = Field(0, ge=0)
    joinedAt: int  # epoch milliseconds
    answers: Dict[int, str] = {}


class Room(BaseModel):
    id: str
    roomCode: str
    topic: str
    difficulty: Difficulty
    questionCount: int
    status: RoomStatus = "waiting"
    hostId: str
    createdAt: int
    currentQuestionIndex: int = 0
    players: Dict[str, Player]
    questions: List[Question]
    totalQuestions: int
    isGameComplete: bool = False
    aiGenerated: bool = False
    questionsGenerating: bool = False
    fallbackReason: Optional[str] = None

    @property
    def host(self) -> Player:
        return self.players[self.hostId]


class RoomCreateRequest(BaseModel):
    nickname: str
    topic: str
    difficulty: Difficulty
    questionCount: int
    # raw question dicts; checked against Question when the room is built
    questions: Optional[List[Dict[str, Any]]] = None


class RoomCreateResponse(BaseModel):
    roomId: str
    playerId: str
    aiGenerated: bool
    fallbackReason: Optional[str] = None
