from pydantic import BaseModel


class OrderRow(BaseModel):
    id: int
    user_id: int
    side: str
    price: float
    amount: float
    status: str
    created_at: str
