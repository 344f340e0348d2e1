# tagalbum/db/base.py
from tagalbum.db.database import Base
from tagalbum.models.image import Image, Tag, image_tag

# 这个文件不需要写其他逻辑
# 它的存在只是为了让 SQLAlchemy 知道所有的 Model 都在这里注册过了
