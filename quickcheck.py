# quickcheck.py
from dotenv import load_dotenv

from docrelay.clients import get_oai_client
from docrelay.config import Settings

load_dotenv()
settings = Settings()
client = get_oai_client(settings)

print(
    "Model:",
    client.responses.create(
        model=settings.CHAT_MODEL,
        input="ping",
        max_output_tokens=16,
    ).output_text
)

for vs_id in settings.vector_store_ids:
    vs = client.vector_stores.retrieve(vs_id)
    print("Vector store:", vs.id, vs.status, f"files={vs.file_counts.completed}")

for file_id in settings.file_ids:
    f = client.files.retrieve(file_id)
    print("File:", f.id, f.filename, f.purpose)

print("Backend:", settings.RELAY_BACKEND)
