from app import db
from app.utils.helpers import utc_now

class Notification(db.Model):
    __tablename__ = 'notifications'
    
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    notification_type = db.Column(db.String(50), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=True)
    ref_url = db.Column(db.String(255))
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now)
    send_telegram = db.Column(db.Boolean, default=True)
    is_active = db.Column(db.Boolean, default=True)
    
    creator = db.relationship('User', backref='created_notifications')
    recipients = db.relationship('NotificationRecipient', backref='notification', cascade='all, delete-orphan')
    
    def __repr__(self):
        return f'<Notification {self.title}>'
    
    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'message': self.message,
            'type': self.notification_type,
            'class': self.class_id,
            'ref_url': self.ref_url,
            'created_at': self.created_at.strftime('%Y-%m-%d %H:%M') if self.created_at else ''
        }


class NotificationRecipient(db.Model):
    __tablename__ = 'notification_recipients'
    
    id = db.Column(db.Integer, primary_key=True)
    notification_id = db.Column(db.Integer, db.ForeignKey('notifications.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    is_read = db.Column(db.Boolean, default=False)
    read_at = db.Column(db.DateTime, nullable=True)
    telegram_delivered = db.Column(db.Boolean, default=False)
    telegram_delivered_at = db.Column(db.DateTime, nullable=True)
    telegram_message_id = db.Column(db.Integer, nullable=True)
    
    user = db.relationship('User', backref='notification_recipients')
    
    def __repr__(self):
        return f'<NotificationRecipient {self.id}>'
    
    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = utc_now()
            db.session.commit()
    
    def mark_telegram_delivered(self, message_id=None):
        self.telegram_delivered = True
        self.telegram_delivered_at = utc_now()
        if message_id:
            self.telegram_message_id = message_id
        db.session.commit()
    
    def to_dict(self):
        data = self.notification.to_dict() if self.notification else {}
        data.update({
            'id': self.id,
            'notification_id': self.notification_id,
            'is_read': self.is_read
        })
        return data
