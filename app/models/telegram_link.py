from app import db
from app.utils.helpers import utc_now

class TelegramLink(db.Model):
    __tablename__ = 'telegram_links'
    
    id = db.Column(db.Integer, primary_key=True)
    telegram_id = db.Column(db.BigInteger, unique=True, nullable=False, index=True)
    username = db.Column(db.String(100))
    
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    user = db.relationship('User', backref=db.backref('telegram_link', uselist=False))
    
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utc_now)
    
    def __repr__(self):
        return f'<TelegramLink {self.telegram_id} - {self.username}>'
