"""Render a protocol model into a TypeScript MCP server project.

Output is a flat mapping of file name to file text:

    protocol.ts            tool server wiring, one tool per state
    <state>-packets.ts     packet table and handler class per state
    types.ts               shared shapes and the state-name union
    index.ts               re-exports and boot
    package.json           static manifest
    tsconfig.json          static compiler config

Generated text is not compiled or checked.
"""

from typing import Dict, List

from polyglot_agent.models import Protocol, State

EXTENSION = "ts"

PACKAGE_JSON = """{
  "name": "polyglot-generated-mcp",
  "version": "1.0.0",
  "description": "Generated MCP protocol implementation",
  "type": "module",
  "main": "index.js",
  "scripts": {
    "build": "tsc",
    "start": "node index.js",
    "dev": "tsc --watch"
  },
  "dependencies": {
    "@modelcontextprotocol/sdk": "^0.5.0"
  },
  "devDependencies": {
    "@types/node": "^20.0.0",
    "typescript": "^5.0.0"
  }
}
"""

TSCONFIG_JSON = """{
  "compilerOptions": {
    "target": "ES2022",
    "module": "ESNext",
    "moduleResolution": "Node",
    "allowSyntheticDefaultImports": true,
    "esModuleInterop": true,
    "allowJs": true,
    "strict": true,
    "skipLibCheck": true,
    "forceConsistentCasingInFileNames": true,
    "outDir": "./dist",
    "rootDir": "./src"
  },
  "include": ["src/**/*"],
  "exclude": ["node_modules", "dist"]
}
"""

MANIFEST_FILES = ("package.json", "tsconfig.json")


def ts_string(value: str) -> str:
    """Quote ``value`` as a single-quoted TypeScript string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


def identifier(name: str) -> str:
    """Capitalized identifier for a state or packet name."""
    cleaned = "".join(ch for ch in name if ch.isalnum() or ch == "_") or "Unnamed"
    if cleaned[0].isdigit():
        cleaned = "_" + cleaned
    return cleaned[:1].upper() + cleaned[1:]


def packets_filename(state_name: str) -> str:
    return f"{state_name.lower()}-packets.{EXTENSION}"


def packets_module(state_name: str) -> str:
    """Import specifier for a state's packet module (compiled .js)."""
    return f"./{state_name.lower()}-packets.js"


class CodeRenderer:
    """Render every output file for one protocol."""

    def __init__(self, protocol: Protocol):
        self.protocol = protocol
        self.state_names = list(protocol.states)

    def render(self) -> Dict[str, str]:
        files: Dict[str, str] = {}
        files[f"protocol.{EXTENSION}"] = self.render_protocol_handler()
        for state_name, state in self.protocol.states.items():
            files[packets_filename(state_name)] = self.render_state_packets(state_name, state)
        files[f"types.{EXTENSION}"] = self.render_types()
        files[f"index.{EXTENSION}"] = self.render_index()
        files["package.json"] = PACKAGE_JSON
        files["tsconfig.json"] = TSCONFIG_JSON
        return files

    # ----- protocol.ts -----------------------------------------------------

    def render_protocol_handler(self) -> str:
        lines = [
            "import { McpServer } from '@modelcontextprotocol/sdk/server/index.js'",
            "import { CallToolRequestSchema, ListToolsRequestSchema } from '@modelcontextprotocol/sdk/types.js'",
            "import { StdioServerTransport } from '@modelcontextprotocol/sdk/server/stdio.js'",
        ]
        for state in self.state_names:
            lines.append(f"import {{ {identifier(state)}Packets }} from '{packets_module(state)}'")

        initial = ts_string(self.state_names[0]) if self.state_names else "''"
        lines += [
            "",
            "export class ProtocolHandler {",
            "  private server: McpServer",
            f"  private currentState: string = {initial}",
            "",
            "  constructor() {",
            "    this.server = new McpServer({",
            "      name: 'polyglot-generated-protocol',",
            "      version: '1.0.0'",
            "    }, {",
            "      capabilities: {",
            "        tools: {}",
            "      }",
            "    })",
            "",
            "    this.setupHandlers()",
            "  }",
            "",
            "  private setupHandlers() {",
            "    this.server.setRequestHandler(ListToolsRequestSchema, async () => ({",
            "      tools: [",
        ]

        tools = []
        for state in self.state_names:
            tools.append("\n".join([
                "        {",
                f"          name: 'handle_{state.lower()}',",
                f"          description: {ts_string(f'Handle {state} protocol packets')},",
                "          inputSchema: {",
                "            type: 'object',",
                "            properties: {",
                "              packetData: { type: 'string', description: 'Packet data' }",
                "            }",
                "          }",
                "        }",
            ]))
        if tools:
            lines.append(",\n".join(tools))

        lines += [
            "      ]",
            "    }))",
            "",
            "    this.server.setRequestHandler(CallToolRequestSchema, async (request) => {",
            "      switch (request.params.name) {",
        ]
        for state in self.state_names:
            lines += [
                f"        case 'handle_{state.lower()}':",
                f"          return this.handle{identifier(state)}(request.params.arguments?.packetData as string)",
            ]
        lines += [
            "        default:",
            "          throw new Error(`Unknown tool: ${request.params.name}`)",
            "      }",
            "    })",
            "  }",
            "",
        ]

        handlers = []
        for state in self.state_names:
            name = identifier(state)
            handlers.append("\n".join([
                f"  private async handle{name}(packetData: string) {{",
                f"    // Handle {state} packets ({len(self.protocol.states[state].packets)} known)",
                "    return {",
                "      content: [{",
                "        type: 'text',",
                f"        text: `Processed {state} packet: ${{packetData}}`",
                "      }]",
                "    }",
                "  }",
            ]))
        lines.append("\n\n".join(handlers))

        lines += [
            "",
            "  async start() {",
            "    const transport = new StdioServerTransport()",
            "    await this.server.connect(transport)",
            "  }",
            "}",
            "",
            "// Start the server",
            "const handler = new ProtocolHandler()",
            "handler.start().catch(console.error)",
            "",
        ]
        return "\n".join(lines)

    # ----- <state>-packets.ts ----------------------------------------------

    def render_state_packets(self, state_name: str, state: State) -> str:
        name = identifier(state_name)
        lines = [
            f"export interface {name}Packet {{",
            "  id: string",
            "  name: string",
            "  direction: 'ClientToServer' | 'ServerToClient'",
            "  fields: PacketField[]",
            "}",
            "",
            "export interface PacketField {",
            "  name: string",
            "  type: string",
            "}",
            "",
            f"export const {name}Packets: {name}Packet[] = [",
        ]

        entries = []
        for packet in state.packets:
            field_lines = [
                f"      {{ name: {ts_string(f.name)}, type: {ts_string(f.type)} }}"
                for f in packet.fields
            ]
            entry = [
                "  {",
                f"    id: {ts_string(packet.id)},",
                f"    name: {ts_string(packet.name)},",
                f"    direction: '{packet.direction.value}',",
                "    fields: [",
            ]
            if field_lines:
                entry.append(",\n".join(field_lines))
            entry += ["    ]", "  }"]
            entries.append("\n".join(entry))
        if entries:
            lines.append(",\n".join(entries))
        lines += ["]", "", f"export class {name}PacketHandler {{"]

        handlers: List[str] = []
        seen = set()
        for packet in state.packets:
            handler = identifier(packet.name)
            if handler in seen:
                continue
            seen.add(handler)
            handlers.append("\n".join([
                f"  static handle{handler}(data: any) {{",
                f"    // Handle {packet.name} packet",
                f"    console.log({ts_string(f'Handling {packet.name} packet:')}, data)",
                "    return { success: true, data }",
                "  }",
            ]))
        lines.append("\n\n".join(handlers))
        lines += ["}", ""]
        return "\n".join(lines)

    # ----- types.ts --------------------------------------------------------

    def render_types(self) -> str:
        union = " | ".join(ts_string(s) for s in self.state_names) or "never"
        return "\n".join([
            "export type PacketDirection = 'ClientToServer' | 'ServerToClient'",
            "",
            "export interface PacketField {",
            "  name: string",
            "  type: string",
            "}",
            "",
            "export interface Packet {",
            "  direction: PacketDirection",
            "  id: string",
            "  name: string",
            "  fields: PacketField[]",
            "}",
            "",
            "export interface State {",
            "  packets: Packet[]",
            "}",
            "",
            "export interface Protocol {",
            "  states: Record<string, State>",
            "}",
            "",
            f"export type ProtocolState = {union}",
            "",
        ])

    # ----- index.ts --------------------------------------------------------

    def render_index(self) -> str:
        lines = ["export { ProtocolHandler } from './protocol.js'"]
        for state in self.state_names:
            name = identifier(state)
            lines.append(
                f"export {{ {name}Packets, {name}PacketHandler }} from '{packets_module(state)}'"
            )
        lines += [
            "export * from './types.js'",
            "",
            "// Example usage",
            "import { ProtocolHandler } from './protocol.js'",
            "",
            "const handler = new ProtocolHandler()",
            "handler.start()",
            "",
        ]
        return "\n".join(lines)


def render(protocol: Protocol) -> Dict[str, str]:
    """Render ``protocol`` into the full generated file set."""
    return CodeRenderer(protocol).render()
