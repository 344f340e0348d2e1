from sqlalchemy import Column, Integer, String, Text, ForeignKey, Table
from sqlalchemy.orm import relationship
from tagalbum.db.database import Base

# 图片-标签关联表 (Many-to-Many)
# 任一端被删除时关联行随之级联删除
image_tag = Table(
    "image_tags",
    Base.metadata,
    Column(
        "image_id",
        Integer,
        ForeignKey("images.id", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True,
    ),
)


class Image(Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(Text, nullable=False)
    url = Column(Text, nullable=False)

    # 关联
    tags = relationship(
        "Tag", secondary=image_tag, back_populates="images", passive_deletes=True
    )


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # 同名标签只允许存在一行，并发创建时由唯一约束兜底
    name = Column(String(255), unique=True, index=True, nullable=False)

    images = relationship(
        "Image", secondary=image_tag, back_populates="tags", passive_deletes=True
    )
