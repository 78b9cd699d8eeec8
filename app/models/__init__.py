from app.models.city import City
from app.models.customer import Customer
from app.models.user_log import UserLog
