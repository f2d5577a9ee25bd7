"""
Configuration for the Pipeline Coordination Engine
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Oracle Configuration
# Keys are checked when an oracle is constructed, not at import time
ORACLE_PROVIDER = os.getenv("ORACLE_PROVIDER", "gemini")  # gemini or openai
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

AI_MODEL = os.getenv("AI_MODEL", "gemini-2.0-flash")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.2"))
AI_MAX_RETRIES = int(os.getenv("AI_MAX_RETRIES", "2"))
AI_REQUEST_TIMEOUT = float(os.getenv("AI_REQUEST_TIMEOUT", "600"))

# Paths
BASE_DIR = Path(__file__).parent
GENERATED_DIR = Path(os.getenv("GENERATED_DIR", str(BASE_DIR / "generated")))
TRACE_DIR_NAME = os.getenv("TRACE_DIR_NAME", ".trace")

# Target project build (compile + verify)
BUILD_COMMAND = os.getenv("BUILD_COMMAND", "mvn clean compile test")
BUILD_SUCCESS_MARKER = os.getenv("BUILD_SUCCESS_MARKER", "BUILD SUCCESS")
BUILD_FILE = os.getenv("BUILD_FILE", "pom.xml")
_build_timeout = os.getenv("BUILD_TIMEOUT_SECONDS")
BUILD_TIMEOUT_SECONDS = float(_build_timeout) if _build_timeout else None

# Repair loop
MAX_REPAIR_ITERATIONS = int(os.getenv("MAX_REPAIR_ITERATIONS", "3"))

# Target project layout (Maven conventions by default)
SOURCE_ROOT = os.getenv("SOURCE_ROOT", "src/main/java")
TEST_ROOT = os.getenv("TEST_ROOT", "src/test/java")
RESOURCE_ROOT = os.getenv("RESOURCE_ROOT", "src/main/resources")
TEST_RESOURCE_ROOT = os.getenv("TEST_RESOURCE_ROOT", "src/test/resources")
ROOT_FILES = [f.strip() for f in os.getenv("ROOT_FILES", "pom.xml").split(",") if f.strip()]
TEST_SUFFIXES = ["Test.java", "Tests.java", "IT.java"]
RESOURCE_EXTENSIONS = [".yml", ".yaml", ".properties", ".xml"]
SHARED_CONFIG_FILES = [f"{RESOURCE_ROOT}/application.yml", "pom.xml"]

# Symbol catalog conventions
CATALOG_EXTENSIONS = [".java"]
DOMAIN_MODEL_SEGMENT = os.getenv("DOMAIN_MODEL_SEGMENT", "domain.model")
REPOSITORY_SEGMENT = os.getenv("REPOSITORY_SEGMENT", "domain.repository")
