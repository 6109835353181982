# Force SQLModel table registration at test discovery time
# so every table exists before the first create_all()
import courtclub.models  # noqa: F401
