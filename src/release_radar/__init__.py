"""Steam の発売予定ゲームを月単位で追跡するリリースレーダー。"""

__version__ = "0.1.0"
